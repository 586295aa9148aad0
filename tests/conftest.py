"""Shared fixtures for the Aurora Builder test-suite.

Every test runs against the packaged configuration only: user overrides are
redirected to an empty temporary directory and the ConfigManager singleton
is reset around each test.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from aurora_builder.config import ConfigManager
from aurora_builder.core.models import Document, ElementKind, Node, new_node

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point user overrides at an empty directory and reload config per test."""
    config_dir = tmp_path / "aurora_config"
    config_dir.mkdir()
    monkeypatch.setenv("AURORA_CONFIG_DIR", str(config_dir))
    ConfigManager.reset()
    yield config_dir
    ConfigManager.reset()


@pytest.fixture
def make_node():
    """Factory for small nodes with readable ids."""
    def factory(node_id, kind=ElementKind.SECTION, children=None, **props):
        return Node(
            label=node_id.upper(),
            kind=kind,
            props=dict(props),
            children=list(children or []),
            id=node_id,
        )
    return factory


@pytest.fixture
def forest_acb(make_node):
    """Top-level ``[A, B]`` where ``A`` contains ``[C]``."""
    c = make_node("c", ElementKind.PARAGRAPH, text="Hello")
    a = make_node("a", ElementKind.CONTAINER, children=[c])
    b = make_node("b", ElementKind.BUTTON, text="Click")
    return [a, b]


@pytest.fixture
def deep_forest(make_node):
    """``[root{mid{leaf}}, other]``: three levels plus a sibling."""
    leaf = make_node("leaf", ElementKind.HEADING)
    mid = make_node("mid", ElementKind.CONTAINER, children=[leaf])
    root = make_node("root", ElementKind.SECTION, children=[mid])
    other = make_node("other", ElementKind.FOOTER)
    return [root, other]


@pytest.fixture
def document_acb(forest_acb):
    return Document(elements=forest_acb)


@pytest.fixture
def shape():
    """Reduce a forest to nested ``(id, [children])`` tuples for assertions."""
    def to_shape(forest):
        return [(node.id, to_shape(node.children)) for node in forest]
    return to_shape


@pytest.fixture
def fresh_button():
    return new_node(ElementKind.BUTTON, "Button", {"text": "Go"})
