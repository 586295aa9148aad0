from __future__ import annotations

"""Undo/redo snapshot management for :class:`Document`.

This service is UI-agnostic and performs pure in-memory history tracking of
the whole document state: content forest, page metadata and integration
flags. Selection and the active breakpoint are view state and are never
captured.

Design principles
-----------------
- No UI imports and no I/O (filesystem/console).
- Snapshots are immutable once stored and never alias the live document or
  each other; restoring hands out a fresh copy.
- Redo stack is cleared on every new record (standard undo/redo behavior).
- Memory usage controlled by a max_history policy on both stacks (trim
  oldest first).
"""

from dataclasses import dataclass
import logging
from typing import List, Optional

from aurora_builder.core.models import Document

__all__ = ["Snapshot", "UndoService", "DEFAULT_MAX_HISTORY"]

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class Snapshot:
    """Immutable in-memory snapshot of a Document.

    Attributes
    ----------
    document :
        A private deep copy of the captured document. Never handed out
        directly; :meth:`restore` returns another copy.
    """

    document: Document

    @classmethod
    def capture(cls, document: Document) -> "Snapshot":
        return cls(document=document.copy())

    def restore(self) -> Document:
        return self.document.copy()


class UndoService:
    """Manage undo/redo stacks for :class:`Document`.

    The service keeps two stacks of snapshots, ``past`` and ``future``, each
    ordered oldest first. Callers record the present document before every
    edit; undo and redo exchange the present with the top of one stack.

    Parameters
    ----------
    max_history : int, default=50
        Maximum number of snapshots kept on each stack. Oldest entries are
        discarded when the capacity is exceeded. Must be >= 1; if passed
        lower, it will be coerced to 1.

    Examples
    --------
    >>> svc = UndoService(max_history=10)
    >>> svc.record(doc)            # before applying an edit
    >>> doc = edited_doc
    >>> doc = svc.undo(doc) or doc # back to the pre-edit state
    >>> doc = svc.redo(doc) or doc # and forward again
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self._max_history: int = max(1, int(max_history))
        self._past: List[Snapshot] = []
        self._future: List[Snapshot] = []

    # --------------------------------------------------------------------- API

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def past_depth(self) -> int:
        return len(self._past)

    @property
    def future_depth(self) -> int:
        return len(self._future)

    def record(self, present: Document) -> None:
        """Capture *present* onto the past stack ahead of an edit.

        The future stack is cleared: a new edit invalidates redo history.
        """
        self.push_snapshot(Snapshot.capture(present))

    def push_snapshot(self, snapshot: Snapshot) -> None:
        """Push a snapshot captured earlier, e.g. before an edit that may fail.

        Like :meth:`record`, this clears the future stack.
        """
        self._push(self._past, snapshot)
        self._future.clear()
        logger.debug("History: record past=%d", len(self._past))

    def undo(self, present: Document) -> Optional[Document]:
        """Return the previous document, or None if there is nothing to undo.

        The given *present* is captured onto the future stack so it can be
        redone.
        """
        if not self._past:
            return None
        previous = self._past.pop()
        self._push(self._future, Snapshot.capture(present))
        logger.debug("History: undo past=%d future=%d", len(self._past), len(self._future))
        return previous.restore()

    def redo(self, present: Document) -> Optional[Document]:
        """Return the next document, or None if there is nothing to redo."""
        if not self._future:
            return None
        following = self._future.pop()
        self._push(self._past, Snapshot.capture(present))
        logger.debug("History: redo past=%d future=%d", len(self._past), len(self._future))
        return following.restore()

    def can_undo(self) -> bool:
        """Return True if an undo operation is currently possible."""
        return len(self._past) > 0

    def can_redo(self) -> bool:
        """Return True if a redo operation is currently possible."""
        return len(self._future) > 0

    def clear(self) -> None:
        """Clear both undo and redo histories."""
        self._past.clear()
        self._future.clear()

    # --------------------------------------------------------------- Internals

    def _push(self, stack: List[Snapshot], snap: Snapshot) -> None:
        stack.append(snap)
        overflow = len(stack) - self._max_history
        if overflow > 0:
            del stack[0:overflow]
