from __future__ import annotations

"""Exception classes for the document editing core.

Cycle-forming moves are raised by the pure edit operations and absorbed at
the service boundary. A missing id is never an error, only a no-op.
Template failures are raised while loading the library catalog so that a
broken template never reaches a drag gesture.
"""

from typing import List, Optional

__all__ = [
    "BuilderError",
    "InvalidMoveError",
    "MalformedTemplateError",
]


class BuilderError(Exception):
    """Base exception for all editing-core errors."""

    def __init__(self, message: str, node_id: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.node_id = node_id
        self.cause = cause

    def __str__(self) -> str:
        if self.node_id:
            return f"[Node: {self.node_id}] {super().__str__()}"
        return super().__str__()


class InvalidMoveError(BuilderError):
    """Raised when a move would make a subtree its own ancestor.

    Attributes
    ----------
    target_parent_id
        The parent the caller attempted to move the node under.
    """

    def __init__(self, message: str, node_id: Optional[str] = None,
                 target_parent_id: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, node_id, cause)
        self.target_parent_id = target_parent_id


class MalformedTemplateError(BuilderError):
    """Raised when a library template or serialized node is missing structure.

    This occurs at catalog-load time and covers missing required fields,
    unknown block kinds and wrongly typed containers.
    """

    def __init__(self, message: str, item_id: Optional[str] = None,
                 validation_errors: Optional[List[str]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, None, cause)
        self.item_id = item_id
        self.validation_errors = validation_errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if self.item_id:
            base = f"[Template: {self.item_id}] {base}"
        if self.validation_errors:
            base = f"{base} ({'; '.join(self.validation_errors)})"
        return base
