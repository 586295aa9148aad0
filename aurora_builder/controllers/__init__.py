"""Controllers coordinating user gestures with the editing services."""

from .builder_controller import BuilderController

__all__ = ["BuilderController"]
