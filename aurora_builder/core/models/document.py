from __future__ import annotations

"""Content-tree data model for the page builder.

A page is a forest of :class:`Node` blocks plus page-level metadata and
integration flags, bundled together as a :class:`Document`. The module is
free of UI and I/O code; everything here is plain data and pure read
helpers over that data.

Copy-on-write
-------------
Nodes are ordinary dataclasses, but the editing layer never mutates a node
that belongs to a forest it has handed out. Edits build new container
objects along the path to the change and reuse untouched subtrees.

Cloning has two modes (see :func:`clone_subtree`):

- identity-preserving, used when relocating a node and for history
  snapshots, so that selection and external references stay valid;
- fresh-id, used whenever a template or an existing node is duplicated
  into the forest, so that ids stay unique.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
import copy
import uuid

from aurora_builder.core.exceptions import MalformedTemplateError

__all__ = [
    "BREAKPOINTS",
    "ElementKind",
    "Node",
    "NodeLocation",
    "PageMeta",
    "IntegrationSettings",
    "Document",
    "generate_node_id",
    "empty_responsive_style",
    "normalize_responsive_style",
    "new_node",
    "find_node",
    "locate_node",
    "iter_nodes",
    "collect_ids",
    "is_ancestor",
    "contains_node",
    "clone_subtree",
    "clone_forest",
]

BREAKPOINTS = ("desktop", "tablet", "mobile")

ResponsiveStyle = Dict[str, Dict[str, str]]


class ElementKind(str, Enum):
    """Closed set of block kinds the canvas knows how to render."""

    SECTION = "section"
    CONTAINER = "container"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BUTTON = "button"
    IMAGE = "image"
    FORM = "form"
    INPUT = "input"
    NAVBAR = "navbar"
    CAROUSEL = "carousel"
    CARD = "card"
    HERO = "hero"
    FOOTER = "footer"


def generate_node_id() -> str:
    """Generate a globally unique id for a content block."""
    return f"el-{uuid.uuid4().hex}"


def empty_responsive_style() -> ResponsiveStyle:
    return {bp: {} for bp in BREAKPOINTS}


def normalize_responsive_style(style: Optional[Mapping[str, Mapping[str, str]]]) -> ResponsiveStyle:
    """Return a fresh style map carrying exactly the supported breakpoints.

    Missing breakpoints become empty records; unknown keys are dropped.
    """
    result = empty_responsive_style()
    for bp, values in (style or {}).items():
        if bp in result:
            result[bp] = dict(values or {})
    return result


@dataclass
class Node:
    """One content block in the page tree.

    Attributes
    ----------
    label
        Display label shown in the navigator.
    kind
        Block kind, see :class:`ElementKind`.
    props
        Block-specific property bag (text, lists of sub-records, flags).
    children
        Ordered child blocks.
    responsive_style
        One style record per breakpoint (``desktop``, ``tablet``, ``mobile``).
    aria_label, alt_text
        Optional accessibility text.
    id
        Unique identifier, minted on creation and never changed afterwards.
    """

    label: str
    kind: ElementKind
    props: Dict[str, Any] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    responsive_style: ResponsiveStyle = field(default_factory=empty_responsive_style)
    aria_label: Optional[str] = None
    alt_text: Optional[str] = None
    id: str = field(default_factory=generate_node_id)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ElementKind):
            self.kind = ElementKind(self.kind)
        if any(bp not in self.responsive_style for bp in BREAKPOINTS):
            self.responsive_style = normalize_responsive_style(self.responsive_style)

    def has_children(self) -> bool:
        """Return True if this block has child blocks."""
        return len(self.children) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the subtree to plain dicts/lists (catalog key style)."""
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "props": copy.deepcopy(self.props),
            "children": [child.to_dict() for child in self.children],
            "responsiveStyle": {bp: dict(self.responsive_style.get(bp, {})) for bp in BREAKPOINTS},
        }
        if self.aria_label is not None:
            data["ariaLabel"] = self.aria_label
        if self.alt_text is not None:
            data["altText"] = self.alt_text
        return data

    @classmethod
    def from_dict(cls, data: Any, *, fresh_ids: bool = False) -> "Node":
        """Build a subtree from serialized data.

        Parameters
        ----------
        data
            Mapping produced by :meth:`to_dict` or read from the catalog.
        fresh_ids
            Ignore ids carried by *data* and mint new ones for every node.

        Raises
        ------
        MalformedTemplateError
            If any node in the subtree lacks required structure.
        """
        errors: List[str] = []
        node = _node_from_data(data, "node", errors, fresh_ids)
        if errors or node is None:
            raise MalformedTemplateError("Malformed node data", validation_errors=errors)
        return node


def _node_from_data(data: Any, path: str, errors: List[str], fresh_ids: bool) -> Optional[Node]:
    if not isinstance(data, Mapping):
        errors.append(f"{path}: expected a mapping, got {type(data).__name__}")
        return None

    start = len(errors)
    label = data.get("label")
    if not isinstance(label, str):
        errors.append(f"{path}.label: missing or not a string")

    raw_kind = data.get("kind")
    kind: Optional[ElementKind] = None
    try:
        kind = ElementKind(raw_kind)
    except ValueError:
        errors.append(f"{path}.kind: unknown block kind {raw_kind!r}")

    props = data.get("props", {})
    if props is None:
        props = {}
    if not isinstance(props, Mapping):
        errors.append(f"{path}.props: expected a mapping")

    style = data.get("responsiveStyle", {})
    if style is None:
        style = {}
    if not isinstance(style, Mapping):
        errors.append(f"{path}.responsiveStyle: expected a mapping")
    else:
        for bp, values in style.items():
            if bp not in BREAKPOINTS:
                errors.append(f"{path}.responsiveStyle: unknown breakpoint {bp!r}")
            elif values is not None and not isinstance(values, Mapping):
                errors.append(f"{path}.responsiveStyle.{bp}: expected a mapping")

    raw_children = data.get("children", [])
    if raw_children is None:
        raw_children = []
    children: List[Node] = []
    if not isinstance(raw_children, list):
        errors.append(f"{path}.children: expected a list")
    else:
        for idx, raw_child in enumerate(raw_children):
            child = _node_from_data(raw_child, f"{path}.children[{idx}]", errors, fresh_ids)
            if child is not None:
                children.append(child)

    if len(errors) > start or kind is None:
        return None

    node_id = data.get("id")
    if fresh_ids or not isinstance(node_id, str) or not node_id:
        node_id = generate_node_id()

    return Node(
        label=label,
        kind=kind,
        props=copy.deepcopy(dict(props)),
        children=children,
        responsive_style=normalize_responsive_style(style),
        aria_label=data.get("ariaLabel"),
        alt_text=data.get("altText"),
        id=node_id,
    )


@dataclass(frozen=True)
class NodeLocation:
    """Where a node lives: the node itself, its parent id and sibling index."""

    node: Node
    parent_id: Optional[str]
    index: int


@dataclass
class PageMeta:
    """Page-level metadata edited in the SEO panel."""

    title: str = ""
    description: str = ""
    custom_head_html: str = ""
    custom_body_scripts: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "customHeadHTML": self.custom_head_html,
            "customBodyScripts": self.custom_body_scripts,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PageMeta":
        data = data or {}
        return cls(
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            custom_head_html=str(data.get("customHeadHTML", "")),
            custom_body_scripts=str(data.get("customBodyScripts", "")),
        )


def _default_cms() -> Dict[str, bool]:
    return {"contentful": False, "sanity": False, "notion": False}


def _default_ecommerce() -> Dict[str, bool]:
    return {"shopify": False, "stripe": False, "snipcart": False}


@dataclass
class IntegrationSettings:
    """Boolean third-party integration toggles grouped by category."""

    cms: Dict[str, bool] = field(default_factory=_default_cms)
    ecommerce: Dict[str, bool] = field(default_factory=_default_ecommerce)

    GROUPS = ("cms", "ecommerce")

    def copy(self) -> "IntegrationSettings":
        return IntegrationSettings(cms=dict(self.cms), ecommerce=dict(self.ecommerce))

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return {"cms": dict(self.cms), "ecommerce": dict(self.ecommerce)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "IntegrationSettings":
        data = data or {}
        cms = _default_cms()
        cms.update({k: bool(v) for k, v in (data.get("cms") or {}).items()})
        ecommerce = _default_ecommerce()
        ecommerce.update({k: bool(v) for k, v in (data.get("ecommerce") or {}).items()})
        return cls(cms=cms, ecommerce=ecommerce)


@dataclass
class Document:
    """In-memory representation of the page being edited.

    Attributes
    ----------
    elements
        The forest: ordered top-level blocks.
    page_meta
        Title, description and injected head/body markup.
    integrations
        CMS and commerce integration flags.
    """

    elements: List[Node] = field(default_factory=list)
    page_meta: PageMeta = field(default_factory=PageMeta)
    integrations: IntegrationSettings = field(default_factory=IntegrationSettings)

    def copy(self) -> "Document":
        """Return a fully independent deep copy (ids preserved)."""
        return Document(
            elements=clone_forest(self.elements),
            page_meta=PageMeta(**vars(self.page_meta)),
            integrations=self.integrations.copy(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elements": [node.to_dict() for node in self.elements],
            "pageMeta": self.page_meta.to_dict(),
            "integrations": self.integrations.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        elements = [Node.from_dict(raw) for raw in data.get("elements") or []]
        return cls(
            elements=elements,
            page_meta=PageMeta.from_dict(data.get("pageMeta")),
            integrations=IntegrationSettings.from_dict(data.get("integrations")),
        )


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------

def new_node(
    kind: ElementKind | str,
    label: str,
    props: Optional[Mapping[str, Any]] = None,
    children: Optional[Iterable[Node]] = None,
    responsive_style: Optional[Mapping[str, Mapping[str, str]]] = None,
    aria_label: Optional[str] = None,
    alt_text: Optional[str] = None,
) -> Node:
    """Create a node with a freshly minted id and a complete style map."""
    return Node(
        label=label,
        kind=ElementKind(kind),
        props=dict(props or {}),
        children=list(children or []),
        responsive_style=normalize_responsive_style(responsive_style),
        aria_label=aria_label,
        alt_text=alt_text,
    )


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------

def iter_nodes(forest: Iterable[Node]) -> Iterator[Node]:
    """Yield every node of *forest* in depth-first pre-order."""
    for node in forest:
        yield node
        yield from iter_nodes(node.children)


def collect_ids(forest: Iterable[Node]) -> List[str]:
    """Return the ids of all nodes in pre-order (duplicates included)."""
    return [node.id for node in iter_nodes(forest)]


def find_node(forest: Iterable[Node], node_id: str) -> Optional[Node]:
    """Depth-first search for *node_id*; first match wins."""
    for node in forest:
        if node.id == node_id:
            return node
        found = find_node(node.children, node_id)
        if found is not None:
            return found
    return None


def locate_node(
    forest: List[Node],
    node_id: str,
    parent_id: Optional[str] = None,
) -> Optional[NodeLocation]:
    """Find *node_id* together with its parent id and index among siblings."""
    for index, node in enumerate(forest):
        if node.id == node_id:
            return NodeLocation(node=node, parent_id=parent_id, index=index)
        found = locate_node(node.children, node_id, node.id)
        if found is not None:
            return found
    return None


def contains_node(forest: Iterable[Node], parent_id: str, search_id: str) -> bool:
    """Return True if *search_id* lies strictly inside the subtree of *parent_id*."""
    parent = find_node(forest, parent_id)
    if parent is None:
        return False
    return find_node(parent.children, search_id) is not None


def is_ancestor(forest: Iterable[Node], ancestor_id: str, node_id: str) -> bool:
    """Return True if *ancestor_id* is a proper ancestor of *node_id*."""
    return contains_node(forest, ancestor_id, node_id)


# ---------------------------------------------------------------------------
# Cloning
# ---------------------------------------------------------------------------

def clone_subtree(node: Node, fresh_ids: bool = False) -> Node:
    """Deep-clone *node* and its descendants.

    Parameters
    ----------
    node
        Root of the subtree to clone.
    fresh_ids
        When True every cloned node receives a new id (template insertion,
        duplicate). When False ids are preserved (relocation, snapshots).

    Returns
    -------
    Node
        A subtree sharing no mutable container with *node*.
    """
    return Node(
        label=node.label,
        kind=node.kind,
        props=copy.deepcopy(node.props),
        children=[clone_subtree(child, fresh_ids) for child in node.children],
        responsive_style=normalize_responsive_style(node.responsive_style),
        aria_label=node.aria_label,
        alt_text=node.alt_text,
        id=generate_node_id() if fresh_ids else node.id,
    )


def clone_forest(forest: Iterable[Node]) -> List[Node]:
    """Identity-preserving deep clone of a whole forest."""
    return [clone_subtree(node) for node in forest]
