from __future__ import annotations

"""Component library catalog and the starting document.

The catalog is static data shipped as ``component_library.yml``. It is
validated once, when loaded, so that a malformed template fails fast here
rather than in the middle of a drag gesture. Templates are only ever
consumed through fresh-id clones (:meth:`LibraryItem.instantiate`).
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from aurora_builder.config import ConfigManager
from aurora_builder.core.exceptions import MalformedTemplateError
from aurora_builder.core.models import (
    Document,
    IntegrationSettings,
    Node,
    PageMeta,
    clone_subtree,
)

__all__ = [
    "LIBRARY_CATEGORIES",
    "LibraryItem",
    "LibraryCatalog",
    "load_library",
    "default_catalog",
    "default_document",
]

logger = logging.getLogger(__name__)

LIBRARY_CATEGORIES = ("Layout", "Content", "Components")


@dataclass(frozen=True)
class LibraryItem:
    """One draggable entry of the component library."""

    id: str
    name: str
    description: str
    preview: str
    category: str
    template: Node

    def instantiate(self) -> Node:
        """Return a copy of the template with brand-new ids."""
        return clone_subtree(self.template, fresh_ids=True)


def _load_item(raw: Any, position: int) -> LibraryItem:
    if not isinstance(raw, Mapping):
        raise MalformedTemplateError(
            f"Library entry #{position} is not a mapping",
            validation_errors=[f"got {type(raw).__name__}"],
        )

    item_id = raw.get("id")
    errors: List[str] = []
    if not isinstance(item_id, str) or not item_id:
        errors.append("id: missing or not a string")
        item_id = None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        errors.append("name: missing or not a string")
    category = raw.get("category")
    if category not in LIBRARY_CATEGORIES:
        errors.append(f"category: expected one of {', '.join(LIBRARY_CATEGORIES)}, got {category!r}")

    template: Optional[Node] = None
    if "template" not in raw:
        errors.append("template: missing")
    else:
        try:
            template = Node.from_dict(raw["template"], fresh_ids=True)
        except MalformedTemplateError as exc:
            errors.extend(f"template: {msg}" for msg in exc.validation_errors)

    if errors or template is None:
        raise MalformedTemplateError(
            f"Library entry #{position} is malformed",
            item_id=item_id,
            validation_errors=errors,
        )

    return LibraryItem(
        id=item_id,
        name=name,
        description=str(raw.get("description") or ""),
        preview=str(raw.get("preview") or name),
        category=category,
        template=template,
    )


def load_library(data: Any) -> List[LibraryItem]:
    """Validate raw catalog entries and build :class:`LibraryItem` objects.

    Raises
    ------
    MalformedTemplateError
        On the first malformed entry, or when two entries share an id.
    """
    if not isinstance(data, list):
        raise MalformedTemplateError(
            "Component library must be a list of items",
            validation_errors=[f"got {type(data).__name__}"],
        )
    items: List[LibraryItem] = []
    seen: Dict[str, int] = {}
    for position, raw in enumerate(data):
        item = _load_item(raw, position)
        if item.id in seen:
            raise MalformedTemplateError(
                f"Duplicate library item id (entries #{seen[item.id]} and #{position})",
                item_id=item.id,
            )
        seen[item.id] = position
        items.append(item)
    logger.info("Component library loaded: %d items", len(items))
    return items


class LibraryCatalog:
    """Read-only, ordered collection of library items."""

    def __init__(self, items: Iterable[LibraryItem]) -> None:
        self._items: List[LibraryItem] = list(items)
        self._by_id: Dict[str, LibraryItem] = {item.id: item for item in self._items}

    @classmethod
    def from_data(cls, data: Any) -> "LibraryCatalog":
        return cls(load_library(data))

    @property
    def items(self) -> List[LibraryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[LibraryItem]:
        return self._by_id.get(item_id)

    def by_category(self) -> Dict[str, List[LibraryItem]]:
        """Group items by category, keeping catalog order within each group."""
        groups: Dict[str, List[LibraryItem]] = {category: [] for category in LIBRARY_CATEGORIES}
        for item in self._items:
            groups[item.category].append(item)
        return groups

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LibraryItem]:
        return iter(self._items)


def default_catalog(config: Optional[ConfigManager] = None) -> LibraryCatalog:
    """Load the packaged component library (plus user overrides)."""
    config = config or ConfigManager()
    return LibraryCatalog.from_data(config.get_library().get("items", []))


def default_document(config: Optional[ConfigManager] = None) -> Document:
    """Build the starting document from the seed content and editor defaults."""
    config = config or ConfigManager()
    editor = config.get_editor_config()
    seed = config.get_seed_document()
    elements = [Node.from_dict(raw, fresh_ids=True) for raw in seed.get("elements") or []]
    return Document(
        elements=elements,
        page_meta=PageMeta.from_dict(editor.get("page_meta")),
        integrations=IntegrationSettings.from_dict(editor.get("integrations")),
    )
