from __future__ import annotations

"""Edit journaling model for structural edits.

This module defines a minimal, UI-agnostic, in-memory journal of the
structural edits committed during a session. The journal can be serialized
by callers and later replayed against a document, e.g. to reproduce a bug
report or to rebuild a session from its seed.

Scope:
- Pure core model (no I/O, no UI).
- Conservative and robust: failures during replay are collected, not raised.
- JSON-serializable serialization format for persistence by callers.

Supported operations:
- "insert":         {"parent_id": str|None, "index": int|None, "node": dict}
- "remove":         {"node_id": str}
- "move":           {"node_id": str, "parent_id": str|None, "index": int|None}
- "set_prop":       {"node_id": str, "key": str, "value": Any}
- "set_style":      {"node_id": str, "breakpoint": str, "property": str, "value": str|None}
- "set_node_field": {"node_id": str, "field": str, "value": str|None}

Entries beyond the current position are edits that were undone: they are
kept so redo can step forward again, ignored by replay and serialization,
and discarded as soon as a new edit is recorded.

Inserted nodes are stored with their ids, so later entries that refer to
them still resolve on replay. Arbitrary transform-based updates cannot be
serialized and are not journaled.

Dispatch is delegated to StructureEditingService methods:
- insert         -> StructureEditingService.insert_element
- remove         -> StructureEditingService.remove_element
- move           -> StructureEditingService.move_element
- set_prop       -> StructureEditingService.set_element_prop
- set_style      -> StructureEditingService.set_element_style
- set_node_field -> StructureEditingService.set_element_field
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, TypedDict
from typing import TYPE_CHECKING

import time

from aurora_builder.core.exceptions import MalformedTemplateError
from aurora_builder.core.models.document import Document, Node, clone_forest

if TYPE_CHECKING:
    # Import only for type checking to avoid runtime circular import
    from aurora_builder.core.services.structure_editing_service import StructureEditingService

__all__ = ["JournalEntry", "EditJournal", "ReplayReport", "JOURNAL_OPERATIONS"]

JOURNAL_OPERATIONS = ("insert", "remove", "move", "set_prop", "set_style", "set_node_field")


class ReplayReport(TypedDict):
    applied: int
    skipped: int
    errors: List[str]


@dataclass
class JournalEntry:
    """Single journal entry representing one structural edit.

    Attributes
    ----------
    operation
        Operation kind, one of :data:`JOURNAL_OPERATIONS`.
    details
        Operation-specific payload. Must be JSON-serializable.
    timestamp
        Unix epoch seconds when the entry was recorded.
    """
    operation: str
    details: Dict[str, Any]
    timestamp: float


class EditJournal:
    """In-memory journal of structural edits with record/replay capabilities.

    Notes
    -----
    - This class does not perform any persistence or I/O. Callers are
      responsible for saving/loading serialized data.
    - Replay is resilient: routine failures are collected in a report.
    """

    def __init__(self) -> None:
        """Initialize an empty edit journal."""
        self._entries: List[JournalEntry] = []
        self._position: int = 0

    def __len__(self) -> int:
        return self._position

    @property
    def entries(self) -> List[JournalEntry]:
        """Active entries, oldest first (undone edits excluded)."""
        return self._entries[: self._position]

    @property
    def position(self) -> int:
        """Number of active entries."""
        return self._position

    def rewind_to(self, position: int) -> None:
        """Move the active end of the journal, e.g. on undo or redo.

        *position* is clamped to the recorded entries; nothing is discarded.
        """
        self._position = max(0, min(int(position), len(self._entries)))

    def record_edit(self, operation: str, details: Dict[str, Any]) -> None:
        """Record a new edit entry with current timestamp.

        The payload shape is not validated here; replay does that when
        dispatching to the service.
        """
        entry = JournalEntry(operation=operation, details=dict(details), timestamp=time.time())
        del self._entries[self._position:]
        self._entries.append(entry)
        self._position = len(self._entries)

    def replay_edits(
        self,
        document: Document,
        editing_service: "StructureEditingService",
    ) -> Tuple[Document, ReplayReport]:
        """Replay all recorded edits against *document*.

        Parameters
        ----------
        document
            Starting document. It is not modified.
        editing_service
            Service providing the structural operations.

        Returns
        -------
        tuple
            The resulting document and a report::

                {
                  "applied": int,   # edits successfully applied
                  "skipped": int,   # edits skipped or failed
                  "errors": List[str],
                }
        """
        applied = 0
        skipped = 0
        errors: List[str] = []
        elements = list(document.elements)

        for idx, entry in enumerate(self.entries):
            op = entry.operation
            details = entry.details
            payload_error = _validate_payload(op, details)
            if payload_error:
                skipped += 1
                errors.append(f"[{idx}] {payload_error}")
                continue

            if op == "insert":
                try:
                    node = Node.from_dict(details["node"])
                except MalformedTemplateError as exc:
                    skipped += 1
                    errors.append(f"[{idx}] insert: {exc}")
                    continue
                result = editing_service.insert_element(elements, details.get("parent_id"), node, details.get("index"))
            elif op == "remove":
                result = editing_service.remove_element(elements, details["node_id"])
            elif op == "move":
                result = editing_service.move_element(
                    elements, details["node_id"], details.get("parent_id"), details.get("index")
                )
            elif op == "set_prop":
                result = editing_service.set_element_prop(
                    elements, details["node_id"], details["key"], details.get("value")
                )
            elif op == "set_style":
                result = editing_service.set_element_style(
                    elements, details["node_id"], details["breakpoint"], details["property"], details.get("value")
                )
            else:  # set_node_field
                result = editing_service.set_element_field(
                    elements, details["node_id"], details["field"], details.get("value")
                )

            if result.success and result.elements is not None:
                elements = result.elements
                applied += 1
            else:
                skipped += 1
                errors.append(f"[{idx}] {op} failed: {result.message}")

        report: ReplayReport = {"applied": applied, "skipped": skipped, "errors": errors}
        replayed = document.copy()
        replayed.elements = clone_forest(elements)
        return replayed, report

    def clear_journal(self) -> None:
        """Remove all entries from the journal."""
        self._entries.clear()
        self._position = 0

    def serialize(self) -> List[Dict[str, Any]]:
        """Serialize journal entries to a JSON-compatible list of dicts."""
        return [
            {"operation": e.operation, "details": e.details, "timestamp": e.timestamp}
            for e in self.entries
        ]

    @classmethod
    def deserialize(cls, data: Any) -> "EditJournal":
        """Create an EditJournal from serialized data.

        Malformed items are skipped; a non-list input yields an empty journal.
        """
        journal = cls()
        if not isinstance(data, list):
            return journal
        for item in data:
            if not isinstance(item, dict):
                continue
            op = item.get("operation")
            details = item.get("details")
            ts = item.get("timestamp")
            if not isinstance(op, str) or not isinstance(details, dict) or not isinstance(ts, (int, float)):
                continue
            journal._entries.append(JournalEntry(operation=op, details=details, timestamp=float(ts)))
        journal._position = len(journal._entries)
        return journal


def _validate_payload(op: str, details: Dict[str, Any]) -> Optional[str]:
    """Return an error message if *details* does not fit *op*."""
    if op not in JOURNAL_OPERATIONS:
        return f"unsupported operation '{op}'"
    required = {
        "insert": ("node",),
        "remove": ("node_id",),
        "move": ("node_id",),
        "set_prop": ("node_id", "key"),
        "set_style": ("node_id", "breakpoint", "property"),
        "set_node_field": ("node_id", "field"),
    }[op]
    missing = [key for key in required if key not in details]
    if missing:
        return f"{op}: invalid payload, missing {', '.join(missing)}"
    parent_id = details.get("parent_id")
    if parent_id is not None and not isinstance(parent_id, str):
        return f"{op}: invalid payload, parent_id must be a string or null"
    index = details.get("index")
    if index is not None and (not isinstance(index, int) or isinstance(index, bool)):
        return f"{op}: invalid payload, index must be an integer or null"
    return None
