from __future__ import annotations

"""Structural edits on the page content forest.

This module provides two layers:

- Pure, copy-on-write functions (:func:`insert_node`, :func:`remove_node`,
  :func:`move_node`, :func:`update_node`) that take a forest and return a
  new one. They never mutate their input and reuse untouched subtrees.
- :class:`StructureEditingService`, a UI-agnostic service that wraps those
  functions for the controller. It never raises for expected failures and
  reports the outcome as an :class:`OperationResult`.

Failure policy
--------------
- A missing id is a silent no-op at the function level: removing, updating
  or moving an absent node, and inserting under (or moving to) an absent
  parent, all return an equivalent forest. The service reports these as
  ``not_found`` results.
- Moving a node under itself or one of its descendants raises
  :class:`InvalidMoveError` before anything is rebuilt.

Examples
--------
Basic usage:

    service = StructureEditingService()
    result = service.move_element(doc.elements, "el-1", "el-2", 0)
    if result.success:
        doc.elements = result.elements
"""

from dataclasses import dataclass, replace
import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from aurora_builder.core.exceptions import InvalidMoveError
from aurora_builder.core.models import (
    BREAKPOINTS,
    Node,
    clone_subtree,
    find_node,
    is_ancestor,
    locate_node,
    normalize_responsive_style,
)


__all__ = [
    "OperationResult",
    "StructureEditingService",
    "NodeTransform",
    "insert_node",
    "remove_node",
    "move_node",
    "update_node",
    "set_prop",
    "set_style",
    "set_node_field",
    "EDITABLE_NODE_FIELDS",
]

logger = logging.getLogger(__name__)

NodeTransform = Callable[[Node], Optional[Node]]

EDITABLE_NODE_FIELDS = ("label", "aria_label", "alt_text")


# ---------------------------------------------------------------------------
# Pure operations
# ---------------------------------------------------------------------------

def _clamp_index(index: Optional[int], length: int) -> int:
    """Clamp *index* into ``[0, length]``; ``None`` means append."""
    if index is None:
        return length
    return max(0, min(int(index), length))


def _insert_into(
    nodes: List[Node],
    parent_id: str,
    node: Node,
    index: Optional[int],
) -> Tuple[List[Node], bool]:
    for i, existing in enumerate(nodes):
        if existing.id == parent_id:
            children = list(existing.children)
            children.insert(_clamp_index(index, len(children)), node)
            result = list(nodes)
            result[i] = replace(existing, children=children)
            return result, True
        sub, done = _insert_into(existing.children, parent_id, node, index)
        if done:
            result = list(nodes)
            result[i] = replace(existing, children=sub)
            return result, True
    return nodes, False


def insert_node(
    forest: List[Node],
    parent_id: Optional[str],
    node: Node,
    index: Optional[int] = None,
) -> List[Node]:
    """Insert *node* under *parent_id* (top level when None) at *index*.

    The index is clamped to ``[0, child_count]``, so negative values land at
    the front and oversized values (or None) append. An absent *parent_id*
    leaves the forest unchanged.
    """
    if parent_id is None:
        result = list(forest)
        result.insert(_clamp_index(index, len(result)), node)
        return result

    result, inserted = _insert_into(forest, parent_id, node, index)
    if not inserted:
        logger.debug("insert_node: parent %s not found", parent_id)
        return list(forest)
    return result


def _remove_from(nodes: List[Node], node_id: str) -> Tuple[List[Node], bool]:
    changed = False
    result: List[Node] = []
    for node in nodes:
        if node.id == node_id:
            changed = True
            continue
        sub, sub_changed = _remove_from(node.children, node_id)
        if sub_changed:
            node = replace(node, children=sub)
            changed = True
        result.append(node)
    return result, changed


def remove_node(forest: List[Node], node_id: str) -> List[Node]:
    """Remove *node_id* and its whole subtree wherever it occurs."""
    result, _ = _remove_from(forest, node_id)
    return result


def move_node(
    forest: List[Node],
    node_id: str,
    target_parent_id: Optional[str],
    index: Optional[int] = None,
) -> List[Node]:
    """Relocate the subtree rooted at *node_id* under *target_parent_id*.

    Ids inside the subtree are preserved. *index* addresses the target's
    children after the node has been taken out of its current position.
    An absent node or target parent leaves the forest unchanged; the
    subtree is never dropped.

    Raises
    ------
    InvalidMoveError
        If the target is the node itself or lies inside its subtree.
    """
    location = locate_node(forest, node_id)
    if location is None:
        return list(forest)

    if target_parent_id is not None:
        if target_parent_id == node_id or is_ancestor(forest, node_id, target_parent_id):
            raise InvalidMoveError(
                f"Cannot move '{node_id}' into its own subtree",
                node_id=node_id,
                target_parent_id=target_parent_id,
            )
        if find_node(forest, target_parent_id) is None:
            logger.debug("move_node: target parent %s not found", target_parent_id)
            return list(forest)

    moved = clone_subtree(location.node)
    without = remove_node(forest, node_id)
    return insert_node(without, target_parent_id, moved, index)


def _draft(node: Node) -> Node:
    """Working copy handed to transforms so in-place edits stay local.

    Children are cloned too (ids kept): a transform may edit nested nodes.
    """
    return Node(
        label=node.label,
        kind=node.kind,
        props=copy.deepcopy(node.props),
        children=[clone_subtree(child) for child in node.children],
        responsive_style=normalize_responsive_style(node.responsive_style),
        aria_label=node.aria_label,
        alt_text=node.alt_text,
        id=node.id,
    )


def _apply_transform(node: Node, transform: NodeTransform) -> Node:
    draft = _draft(node)
    updated = transform(draft)
    if updated is None:
        updated = draft
    if not isinstance(updated, Node):
        raise TypeError(f"Node transform returned {type(updated).__name__}, expected Node")
    if updated.id != node.id:
        logger.warning("Node transform tried to change id %s -> %s; keeping original", node.id, updated.id)
    return replace(
        updated,
        id=node.id,
        responsive_style=normalize_responsive_style(updated.responsive_style),
    )


def _update_in(nodes: List[Node], node_id: str, transform: NodeTransform) -> Tuple[List[Node], bool]:
    changed = False
    result: List[Node] = []
    for node in nodes:
        if node.id == node_id:
            node = _apply_transform(node, transform)
            changed = True
        else:
            sub, sub_changed = _update_in(node.children, node_id, transform)
            if sub_changed:
                node = replace(node, children=sub)
                changed = True
        result.append(node)
    return result, changed


def update_node(forest: List[Node], node_id: str, transform: NodeTransform) -> List[Node]:
    """Apply *transform* to exactly the node matching *node_id*.

    The transform receives a working copy and may either return a node or
    edit the copy in place and return None. The node keeps its id and a
    complete breakpoint style map whatever the transform does.
    """
    result, _ = _update_in(forest, node_id, transform)
    return result


# ---------------------------------------------------------------------------
# Transforms used by the property and style editors
# ---------------------------------------------------------------------------

def set_prop(key: str, value: Any) -> NodeTransform:
    """Transform setting one property-bag key."""

    def transform(node: Node) -> Node:
        node.props[key] = value
        return node

    return transform


def set_style(breakpoint: str, prop: str, value: Optional[str]) -> NodeTransform:
    """Transform setting one style property for one breakpoint.

    A value of None removes the property from that breakpoint.
    """
    if breakpoint not in BREAKPOINTS:
        raise ValueError(f"Unknown breakpoint '{breakpoint}'")

    def transform(node: Node) -> Node:
        record = node.responsive_style[breakpoint]
        if value is None:
            record.pop(prop, None)
        else:
            record[prop] = value
        return node

    return transform


def set_node_field(field_name: str, value: Optional[str]) -> NodeTransform:
    """Transform setting the label or one of the accessibility fields."""
    if field_name not in EDITABLE_NODE_FIELDS:
        raise ValueError(f"Field '{field_name}' is not editable")

    def transform(node: Node) -> Node:
        setattr(node, field_name, value)
        return node

    return transform


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation completed successfully.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    elements
        The resulting forest. On failure this is the input forest.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None
    elements: Optional[List[Node]] = None


class StructureEditingService:
    """Encapsulates structural edit operations on the content forest.

    Design principles:
    - No UI dependencies and no I/O.
    - No exceptions for expected invalid actions; return OperationResult.
    - Inputs are never mutated; every successful result carries a new forest.
    """

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def insert_element(
        self,
        elements: List[Node],
        parent_id: Optional[str],
        node: Node,
        index: Optional[int] = None,
    ) -> OperationResult:
        """Insert *node* as-is under *parent_id*; ids are the caller's concern."""
        logger.info("Edit: insert_element node=%s parent=%s index=%s", node.id, parent_id, index)
        if parent_id is not None and find_node(elements, parent_id) is None:
            logger.warning("Edit FAIL: insert_element parent_not_found parent=%s", parent_id)
            return self._not_found(elements, parent_id)
        new_elements = insert_node(elements, parent_id, node, index)
        logger.info("Edit OK: insert_element node=%s", node.id)
        return OperationResult(
            True, "Inserted element.", {"node_id": node.id, "parent_id": parent_id}, new_elements
        )

    def remove_element(self, elements: List[Node], node_id: str) -> OperationResult:
        logger.info("Edit: remove_element node=%s", node_id)
        if find_node(elements, node_id) is None:
            logger.info("Edit noop: remove_element node_not_found node=%s", node_id)
            return self._not_found(elements, node_id)
        new_elements = remove_node(elements, node_id)
        logger.info("Edit OK: remove_element node=%s", node_id)
        return OperationResult(True, "Removed element.", {"node_id": node_id}, new_elements)

    def move_element(
        self,
        elements: List[Node],
        node_id: str,
        target_parent_id: Optional[str],
        index: Optional[int] = None,
    ) -> OperationResult:
        """Relocate a subtree, refusing cycle-forming targets."""
        logger.info("Edit: move_element node=%s target=%s index=%s", node_id, target_parent_id, index)
        if find_node(elements, node_id) is None:
            logger.info("Edit noop: move_element node_not_found node=%s", node_id)
            return self._not_found(elements, node_id)
        if target_parent_id is not None and find_node(elements, target_parent_id) is None:
            logger.warning("Edit FAIL: move_element target_not_found target=%s", target_parent_id)
            return self._not_found(elements, target_parent_id)
        try:
            new_elements = move_node(elements, node_id, target_parent_id, index)
        except InvalidMoveError as exc:
            logger.info("Edit noop: move_element invalid_move node=%s target=%s", node_id, target_parent_id)
            return OperationResult(
                False,
                str(exc),
                {"reason": "invalid_move", "node_id": node_id, "target_parent_id": target_parent_id},
                list(elements),
            )
        logger.info("Edit OK: move_element node=%s", node_id)
        return OperationResult(
            True,
            "Moved element.",
            {"node_id": node_id, "target_parent_id": target_parent_id, "index": index},
            new_elements,
        )

    def update_element(self, elements: List[Node], node_id: str, transform: NodeTransform) -> OperationResult:
        logger.debug("Edit: update_element node=%s", node_id)
        if find_node(elements, node_id) is None:
            logger.info("Edit noop: update_element node_not_found node=%s", node_id)
            return self._not_found(elements, node_id)
        new_elements = update_node(elements, node_id, transform)
        logger.debug("Edit OK: update_element node=%s", node_id)
        return OperationResult(True, "Updated element.", {"node_id": node_id}, new_elements)

    def set_element_prop(self, elements: List[Node], node_id: str, key: str, value: Any) -> OperationResult:
        logger.info("Edit: set_element_prop node=%s key=%s", node_id, key)
        return self.update_element(elements, node_id, set_prop(key, value))

    def set_element_style(
        self,
        elements: List[Node],
        node_id: str,
        breakpoint: str,
        prop: str,
        value: Optional[str],
    ) -> OperationResult:
        logger.info("Edit: set_element_style node=%s breakpoint=%s prop=%s", node_id, breakpoint, prop)
        if breakpoint not in BREAKPOINTS:
            return OperationResult(
                False,
                f"Unknown breakpoint '{breakpoint}'.",
                {"reason": "invalid_breakpoint", "allowed": list(BREAKPOINTS)},
                list(elements),
            )
        return self.update_element(elements, node_id, set_style(breakpoint, prop, value))

    def set_element_field(
        self,
        elements: List[Node],
        node_id: str,
        field_name: str,
        value: Optional[str],
    ) -> OperationResult:
        logger.info("Edit: set_element_field node=%s field=%s", node_id, field_name)
        if field_name not in EDITABLE_NODE_FIELDS:
            return OperationResult(
                False,
                f"Field '{field_name}' is not editable.",
                {"reason": "invalid_field", "allowed": list(EDITABLE_NODE_FIELDS)},
                list(elements),
            )
        return self.update_element(elements, node_id, set_node_field(field_name, value))

    def duplicate_element(self, elements: List[Node], node_id: str) -> OperationResult:
        """Insert a fresh-id copy of *node_id* right after the original."""
        logger.info("Edit: duplicate_element node=%s", node_id)
        location = locate_node(elements, node_id)
        if location is None:
            logger.info("Edit noop: duplicate_element node_not_found node=%s", node_id)
            return self._not_found(elements, node_id)
        duplicate = clone_subtree(location.node, fresh_ids=True)
        new_elements = insert_node(elements, location.parent_id, duplicate, location.index + 1)
        logger.info("Edit OK: duplicate_element node=%s copy=%s", node_id, duplicate.id)
        return OperationResult(
            True,
            "Duplicated element.",
            {"node_id": duplicate.id, "source_id": node_id, "parent_id": location.parent_id},
            new_elements,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _not_found(elements: List[Node], node_id: Optional[str]) -> OperationResult:
        return OperationResult(
            False,
            f"Element '{node_id}' not found.",
            {"reason": "not_found", "node_id": node_id},
            list(elements),
        )
