from __future__ import annotations

"""Translate a finished drag gesture into a concrete edit.

The drag sensor reports what is being dragged (a library template or an
existing canvas block) and where it was released (an insertion gap between
siblings, or a container's drop zone). :class:`DropTargetResolver` turns
that pair into a :class:`DropResolution` accepted by the structural edit
operations, or into ``None`` when the gesture must have no effect.

Illegal drops are expected user behavior and never raise.
"""

from dataclasses import dataclass
import logging
from typing import List, Literal, Optional, Union

from aurora_builder.core.catalog import LibraryItem
from aurora_builder.core.models import Node, clone_subtree, find_node, is_ancestor

__all__ = [
    "LibraryItemSource",
    "CanvasNodeSource",
    "DragSource",
    "InsertionGap",
    "ContainerTarget",
    "DropTarget",
    "DropResolution",
    "DropTargetResolver",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LibraryItemSource:
    """A catalog item being dragged from the component library."""

    item: LibraryItem


@dataclass(frozen=True)
class CanvasNodeSource:
    """An existing block being dragged within the canvas."""

    node_id: str


DragSource = Union[LibraryItemSource, CanvasNodeSource]


@dataclass(frozen=True)
class InsertionGap:
    """Gap before child *index* of *parent_id* (None for the top level)."""

    parent_id: Optional[str]
    index: int


@dataclass(frozen=True)
class ContainerTarget:
    """Drop zone that appends into *container_id*."""

    container_id: str


DropTarget = Union[InsertionGap, ContainerTarget]


@dataclass(frozen=True)
class DropResolution:
    """Concrete edit for an accepted drop.

    Attributes
    ----------
    action
        ``"insert"`` for a library template, ``"move"`` for a canvas block.
    parent_id
        Target parent, or None for the top level.
    index
        Target index, or None to append at the end.
    node
        The fresh-id template clone to insert (insert only).
    node_id
        The block to relocate (move only).
    """

    action: Literal["insert", "move"]
    parent_id: Optional[str]
    index: Optional[int]
    node: Optional[Node] = None
    node_id: Optional[str] = None


class DropTargetResolver:
    """Decide where a dragged item may legally land."""

    def resolve(
        self,
        elements: List[Node],
        source: DragSource,
        target: DropTarget,
    ) -> Optional[DropResolution]:
        """Return the edit for dropping *source* onto *target*, or None."""
        if isinstance(target, InsertionGap):
            parent_id, index = target.parent_id, target.index
        elif isinstance(target, ContainerTarget):
            parent_id, index = target.container_id, None
        else:
            logger.debug("Drop rejected: unsupported target %r", target)
            return None

        if isinstance(source, LibraryItemSource):
            node = clone_subtree(source.item.template, fresh_ids=True)
            logger.debug("Drop: insert template=%s parent=%s index=%s", source.item.id, parent_id, index)
            return DropResolution("insert", parent_id, index, node=node)

        if isinstance(source, CanvasNodeSource):
            node_id = source.node_id
            if find_node(elements, node_id) is None:
                logger.debug("Drop rejected: dragged node %s no longer exists", node_id)
                return None
            if parent_id == node_id:
                logger.debug("Drop rejected: self-drop node=%s", node_id)
                return None
            if parent_id is not None and is_ancestor(elements, node_id, parent_id):
                logger.debug("Drop rejected: target %s inside dragged subtree %s", parent_id, node_id)
                return None
            logger.debug("Drop: move node=%s parent=%s index=%s", node_id, parent_id, index)
            return DropResolution("move", parent_id, index, node_id=node_id)

        logger.debug("Drop rejected: unsupported source %r", source)
        return None
