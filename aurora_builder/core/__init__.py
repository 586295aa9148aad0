"""GUI-agnostic editing core: models, services and the library catalog."""
