from __future__ import annotations

"""Shared data structures used across the Aurora Builder core.

This package exposes dataclasses and pure helpers used by services and the
controller. It is intentionally free of UI / I/O code so that the contained
objects can be reused in any context (unit-tests, scripts, front-ends).
"""

from .document import (
    BREAKPOINTS,
    Document,
    ElementKind,
    IntegrationSettings,
    Node,
    NodeLocation,
    PageMeta,
    clone_forest,
    clone_subtree,
    collect_ids,
    contains_node,
    empty_responsive_style,
    find_node,
    generate_node_id,
    is_ancestor,
    iter_nodes,
    locate_node,
    new_node,
    normalize_responsive_style,
)

__all__ = [
    "BREAKPOINTS",
    "Document",
    "ElementKind",
    "IntegrationSettings",
    "Node",
    "NodeLocation",
    "PageMeta",
    "clone_forest",
    "clone_subtree",
    "collect_ids",
    "contains_node",
    "empty_responsive_style",
    "find_node",
    "generate_node_id",
    "is_ancestor",
    "iter_nodes",
    "locate_node",
    "new_node",
    "normalize_responsive_style",
]
