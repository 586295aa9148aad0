from __future__ import annotations

"""Editing services: structural edits, drop resolution and undo/redo.

Services are UI-agnostic and are composed by the builder controller.
"""

from .structure_editing_service import OperationResult, StructureEditingService  # noqa: F401
from .undo_service import UndoService  # noqa: F401
from .drop_resolver import DropTargetResolver  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "StructureEditingService",
    "UndoService",
    "DropTargetResolver",
]
