"""
kgmem

A local-first knowledge graph memory for MCP clients.
Entities, relations and observations persisted to a JSONL file,
with ranked keyword search over the graph.
"""

__version__ = "0.1.0"

from kgmem.core.config import settings
from kgmem.core.types import (
    Entity,
    EntityNotFoundError,
    GraphParseError,
    KnowledgeGraph,
    Relation,
    RelationNotFoundError,
)
from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.graph.search import SearchEngine, search_graph
from kgmem.storage.graph import GraphStore

__all__ = [
    "settings",
    "Entity",
    "EntityNotFoundError",
    "GraphParseError",
    "GraphStore",
    "KnowledgeGraph",
    "KnowledgeGraphManager",
    "Relation",
    "RelationNotFoundError",
    "SearchEngine",
    "search_graph",
]
