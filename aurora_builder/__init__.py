"""Top-level package for the Aurora Builder document editing engine.

Front-ends (canvas renderer, navigator, settings panel) should only depend
on the public API exposed here rather than importing internal modules
directly.
"""

from .core.models import Document, ElementKind, Node  # re-export for convenience
from .controllers import BuilderController

__all__: list[str] = [
    "BuilderController",
    "Document",
    "ElementKind",
    "Node",
]
