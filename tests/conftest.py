"""
Pytest configuration and fixtures for kgmem tests.
"""

import os
import tempfile
from pathlib import Path

import pytest

# Set test environment before importing app modules
os.environ["KGMEM_MEMORY_PATH"] = str(Path(tempfile.mkdtemp()) / "memory.jsonl")

from kgmem.core.types import Entity, KnowledgeGraph, Relation  # noqa: E402
from kgmem.graph.manager import KnowledgeGraphManager  # noqa: E402
from kgmem.storage.graph import GraphStore  # noqa: E402


@pytest.fixture
def memory_path(tmp_path: Path) -> Path:
    """Path of a memory file that does not exist yet."""
    return tmp_path / "memory.jsonl"


@pytest.fixture
def store(memory_path: Path) -> GraphStore:
    return GraphStore(memory_path)


@pytest.fixture
def manager(store: GraphStore) -> KnowledgeGraphManager:
    """Manager over an empty memory file."""
    return KnowledgeGraphManager(store=store)


@pytest.fixture
def widget_entities() -> list[Entity]:
    """Two source files and a plan that references them."""
    return [
        Entity(
            name="modern_widget.dart",
            entity_type="File",
            observations=["Widget for displaying conversion results"],
        ),
        Entity(
            name="legacy_widget.dart",
            entity_type="File",
            observations=["Old widget kept for compatibility"],
        ),
        Entity(
            name="Plan",
            entity_type="Document",
            observations=["Project plan document"],
        ),
    ]


@pytest.fixture
def widget_relations() -> list[Relation]:
    return [
        Relation(from_="Plan", to="modern_widget.dart", relation_type="references"),
        Relation(from_="legacy_widget.dart", to="modern_widget.dart", relation_type="replaced_by"),
    ]


@pytest.fixture
def widget_graph(widget_entities, widget_relations) -> KnowledgeGraph:
    return KnowledgeGraph(entities=widget_entities, relations=widget_relations)


@pytest.fixture
def populated_manager(manager, widget_entities, widget_relations) -> KnowledgeGraphManager:
    """Manager whose memory file already holds the widget graph."""
    manager.create_entities(widget_entities)
    manager.create_relations(widget_relations)
    return manager
