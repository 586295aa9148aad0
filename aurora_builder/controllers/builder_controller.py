from __future__ import annotations

from dataclasses import fields, replace
from typing import Any, Callable, Dict, List, Optional

from aurora_builder.config import ConfigManager
from aurora_builder.core.catalog import LibraryCatalog, default_catalog, default_document
from aurora_builder.core.models import (
    BREAKPOINTS,
    Document,
    IntegrationSettings,
    Node,
    PageMeta,
    clone_subtree,
    find_node,
    locate_node,
)
from aurora_builder.core.models.edit_journal import EditJournal
from aurora_builder.core.services.drop_resolver import (
    CanvasNodeSource,
    DragSource,
    DropTarget,
    DropTargetResolver,
)
from aurora_builder.core.services.structure_editing_service import (
    NodeTransform,
    OperationResult,
    StructureEditingService,
)
from aurora_builder.core.services.undo_service import Snapshot, UndoService

__all__ = ["BuilderController"]

_PAGE_META_FIELDS = tuple(f.name for f in fields(PageMeta))


class BuilderController:
    """Owns the document being edited and coordinates every edit.

    This controller is the single writer of the document. Rendering
    collaborators read :attr:`document`, :attr:`selected_id`,
    :attr:`active_breakpoint` and :attr:`active_drag`, and mutate only
    through the methods below. It contains no UI toolkit code and performs
    no I/O.

    Parameters
    ----------
    document : Document, optional
        Starting document. Defaults to the packaged seed document.
    editing_service : StructureEditingService, optional
        Service performing the structural edits.
    undo_service : UndoService, optional
        History manager. Defaults to the configured history limit.
    resolver : DropTargetResolver, optional
        Drop-target resolver used by :meth:`end_drag`.
    catalog : LibraryCatalog, optional
        Component library. Defaults to the packaged catalog.
    journal : EditJournal, optional
        Journal receiving every committed structural edit.
    config : ConfigManager, optional
        Configuration source for the defaults above.

    Notes
    -----
    - Every successful edit records exactly one history entry, including
      edits that leave the document unchanged (e.g. a move to the node's
      current position).
    - Failed edits (missing ids, cycle-forming moves) are returned as an
      unsuccessful OperationResult and record nothing.
    - Selection and active breakpoint are view state: undo/redo leave them
      alone.
    - Undo and redo move the journal's active end along with the document,
      so the journal never replays an undone edit.
    """

    def __init__(
        self,
        document: Optional[Document] = None,
        editing_service: Optional[StructureEditingService] = None,
        undo_service: Optional[UndoService] = None,
        resolver: Optional[DropTargetResolver] = None,
        catalog: Optional[LibraryCatalog] = None,
        journal: Optional[EditJournal] = None,
        config: Optional[ConfigManager] = None,
    ) -> None:
        self._config = config or ConfigManager()

        # Dependencies
        self.editing_service: StructureEditingService = editing_service or StructureEditingService()
        self.undo_service: UndoService = undo_service or UndoService(self._config.get_history_limit())
        self.resolver: DropTargetResolver = resolver or DropTargetResolver()
        self.catalog: LibraryCatalog = catalog if catalog is not None else default_catalog(self._config)
        self.journal: EditJournal = journal if journal is not None else EditJournal()
        # Journal positions paired with the undo/redo stacks
        self._journal_past: List[int] = []
        self._journal_future: List[int] = []

        # Document state
        self.document: Document = document if document is not None else default_document(self._config)

        # Transient view state
        self.selected_id: Optional[str] = self.document.elements[0].id if self.document.elements else None
        default_bp = self._config.get_editor_config().get("default_breakpoint", "desktop")
        self.active_breakpoint: str = default_bp if default_bp in BREAKPOINTS else "desktop"
        self.active_drag: Optional[DragSource] = None

    # ---------------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------------

    def _push_mark(self, stack: List[int], position: int) -> None:
        stack.append(position)
        overflow = len(stack) - self.undo_service.max_history
        if overflow > 0:
            del stack[:overflow]

    def _push_history(self, snapshot: Snapshot) -> None:
        """Push *snapshot* as one history entry, pairing it with the journal position."""
        self.undo_service.push_snapshot(snapshot)
        self._push_mark(self._journal_past, self.journal.position)
        self._journal_future.clear()

    def _commit(self, new_document: Document) -> None:
        """Record the present document in history and make *new_document* present."""
        self._push_history(Snapshot.capture(self.document))
        self.document = new_document

    def _recorded_edit(
        self,
        mutate: Callable[[List[Node]], OperationResult],
        journal_operation: Optional[str] = None,
        journal_details: Optional[Callable[[OperationResult], Dict[str, Any]]] = None,
    ) -> OperationResult:
        """Run a structural edit and commit it with one history entry on success.

        The snapshot is taken before the edit runs and pushed only if it
        succeeds.
        """
        snapshot = Snapshot.capture(self.document)
        result = mutate(self.document.elements)
        if not result.success or result.elements is None:
            return result
        self._push_history(snapshot)
        self.document = replace(self.document, elements=result.elements)
        if journal_operation and journal_details is not None:
            self.journal.record_edit(journal_operation, journal_details(result))
        return result

    def _journal_insert(self, result: OperationResult) -> Dict[str, Any]:
        node_id = (result.details or {}).get("node_id")
        location = locate_node(self.document.elements, node_id)
        return {
            "parent_id": location.parent_id,
            "index": location.index,
            "node": location.node.to_dict(),
        }

    def _insert_new(self, parent_id: Optional[str], node: Node, index: Optional[int]) -> OperationResult:
        result = self._recorded_edit(
            lambda elements: self.editing_service.insert_element(elements, parent_id, node, index),
            "insert",
            self._journal_insert,
        )
        if result.success:
            self.selected_id = node.id
        return result

    def _ensure_selection_valid(self) -> None:
        if self.selected_id is not None and find_node(self.document.elements, self.selected_id) is None:
            self.selected_id = self.document.elements[0].id if self.document.elements else None

    # ---------------------------------------------------------------------------------
    # Structural edits
    # ---------------------------------------------------------------------------------

    def add_element(self, parent_id: Optional[str], node: Node, index: Optional[int] = None) -> OperationResult:
        """Insert a copy of *node* with fresh ids and select it.

        ``index`` defaults to the end of the parent's children.
        """
        return self._insert_new(parent_id, clone_subtree(node, fresh_ids=True), index)

    def add_library_item(
        self,
        item_id: str,
        parent_id: Optional[str] = None,
        index: Optional[int] = None,
    ) -> OperationResult:
        """Insert the template of catalog item *item_id* (the library "Add" action)."""
        item = self.catalog.get(item_id)
        if item is None:
            return OperationResult(False, f"Library item '{item_id}' not found.", {"reason": "not_found"})
        return self._insert_new(parent_id, item.instantiate(), index)

    def update_element(self, node_id: str, transform: NodeTransform) -> OperationResult:
        """Apply an arbitrary node transform (not journaled)."""
        return self._recorded_edit(
            lambda elements: self.editing_service.update_element(elements, node_id, transform)
        )

    def set_prop(self, node_id: str, key: str, value: Any) -> OperationResult:
        return self._recorded_edit(
            lambda elements: self.editing_service.set_element_prop(elements, node_id, key, value),
            "set_prop",
            lambda _result: {"node_id": node_id, "key": key, "value": value},
        )

    def set_style(
        self,
        node_id: str,
        prop: str,
        value: Optional[str],
        breakpoint: Optional[str] = None,
    ) -> OperationResult:
        """Set one style property; the breakpoint defaults to the active one."""
        bp = breakpoint or self.active_breakpoint
        return self._recorded_edit(
            lambda elements: self.editing_service.set_element_style(elements, node_id, bp, prop, value),
            "set_style",
            lambda _result: {"node_id": node_id, "breakpoint": bp, "property": prop, "value": value},
        )

    def set_node_field(self, node_id: str, field_name: str, value: Optional[str]) -> OperationResult:
        return self._recorded_edit(
            lambda elements: self.editing_service.set_element_field(elements, node_id, field_name, value),
            "set_node_field",
            lambda _result: {"node_id": node_id, "field": field_name, "value": value},
        )

    def remove_element(self, node_id: str) -> OperationResult:
        """Remove a block and its subtree, repairing the selection if needed."""
        result = self._recorded_edit(
            lambda elements: self.editing_service.remove_element(elements, node_id),
            "remove",
            lambda _result: {"node_id": node_id},
        )
        if result.success:
            self._ensure_selection_valid()
        return result

    def move_element(self, node_id: str, target_parent_id: Optional[str], index: Optional[int] = None) -> OperationResult:
        return self._recorded_edit(
            lambda elements: self.editing_service.move_element(elements, node_id, target_parent_id, index),
            "move",
            lambda _result: {"node_id": node_id, "parent_id": target_parent_id, "index": index},
        )

    def duplicate_element(self, node_id: str) -> OperationResult:
        """Insert a fresh-id copy right after *node_id* and select it."""
        result = self._recorded_edit(
            lambda elements: self.editing_service.duplicate_element(elements, node_id),
            "insert",
            self._journal_insert,
        )
        if result.success:
            self.selected_id = (result.details or {}).get("node_id")
        return result

    # ---------------------------------------------------------------------------------
    # Page-level settings
    # ---------------------------------------------------------------------------------

    def set_page_meta(self, **changes: str) -> OperationResult:
        """Merge page metadata fields (title, description, custom_head_html, custom_body_scripts)."""
        unknown = sorted(set(changes) - set(_PAGE_META_FIELDS))
        if unknown:
            raise ValueError(f"Unknown page metadata field(s): {', '.join(unknown)}")
        page_meta = replace(self.document.page_meta, **changes)
        self._commit(replace(self.document, page_meta=page_meta))
        return OperationResult(True, "Updated page metadata.", {"fields": sorted(changes)}, self.document.elements)

    def set_integrations(
        self,
        cms: Optional[Dict[str, bool]] = None,
        ecommerce: Optional[Dict[str, bool]] = None,
    ) -> OperationResult:
        """Merge integration flags per group."""
        current = self.document.integrations
        integrations = IntegrationSettings(
            cms={**current.cms, **{k: bool(v) for k, v in (cms or {}).items()}},
            ecommerce={**current.ecommerce, **{k: bool(v) for k, v in (ecommerce or {}).items()}},
        )
        self._commit(replace(self.document, integrations=integrations))
        return OperationResult(True, "Updated integrations.", integrations.to_dict(), self.document.elements)

    # ---------------------------------------------------------------------------------
    # History
    # ---------------------------------------------------------------------------------

    def can_undo(self) -> bool:
        return self.undo_service.can_undo()

    def can_redo(self) -> bool:
        return self.undo_service.can_redo()

    def undo(self) -> bool:
        """Restore the previous document. Returns False if there is none."""
        previous = self.undo_service.undo(self.document)
        if previous is None:
            return False
        self.document = previous
        if self._journal_past:
            position = self._journal_past.pop()
            self._push_mark(self._journal_future, self.journal.position)
            self.journal.rewind_to(position)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone document. Returns False if there is none."""
        following = self.undo_service.redo(self.document)
        if following is None:
            return False
        self.document = following
        if self._journal_future:
            position = self._journal_future.pop()
            self._push_mark(self._journal_past, self.journal.position)
            self.journal.rewind_to(position)
        return True

    # ---------------------------------------------------------------------------------
    # View state (not part of history)
    # ---------------------------------------------------------------------------------

    @property
    def selected_node(self) -> Optional[Node]:
        if self.selected_id is None:
            return None
        return find_node(self.document.elements, self.selected_id)

    def select(self, node_id: Optional[str]) -> bool:
        """Select *node_id* (or clear with None). Unknown ids are ignored."""
        if node_id is not None and find_node(self.document.elements, node_id) is None:
            return False
        self.selected_id = node_id
        return True

    def set_active_breakpoint(self, breakpoint: str) -> None:
        if breakpoint not in BREAKPOINTS:
            raise ValueError(f"Unknown breakpoint '{breakpoint}'")
        self.active_breakpoint = breakpoint

    def get_breakpoint_settings(self) -> Dict[str, Dict[str, Any]]:
        """Label and viewport width per breakpoint, for toolbar and canvas sizing."""
        configured = self._config.get_editor_config().get("breakpoints") or {}
        return {bp: dict(configured.get(bp) or {"label": bp.title()}) for bp in BREAKPOINTS}

    # ---------------------------------------------------------------------------------
    # Drag session
    # ---------------------------------------------------------------------------------

    def begin_drag(self, source: DragSource) -> None:
        """Open a transient drag session; nothing is committed until drop."""
        self.active_drag = source
        if isinstance(source, CanvasNodeSource):
            self.select(source.node_id)

    def cancel_drag(self) -> None:
        """Abandon the drag session with no effect on the document or history."""
        self.active_drag = None

    def end_drag(self, target: Optional[DropTarget]) -> OperationResult:
        """Close the drag session and commit the drop if it is legal."""
        source = self.active_drag
        self.active_drag = None
        if source is None:
            return OperationResult(False, "No drag in progress.", {"reason": "no_drag"})
        if target is None:
            return OperationResult(False, "Drag cancelled.", {"reason": "cancelled"})

        resolution = self.resolver.resolve(self.document.elements, source, target)
        if resolution is None:
            return OperationResult(False, "Drop rejected.", {"reason": "rejected"})
        if resolution.action == "insert":
            return self._insert_new(resolution.parent_id, resolution.node, resolution.index)
        return self.move_element(resolution.node_id, resolution.parent_id, resolution.index)
