"""
Graph module - Operations and search over the knowledge graph.
"""

from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.graph.search import ScoredEntity, SearchEngine, search_graph, tokenize

__all__ = [
    "KnowledgeGraphManager",
    "ScoredEntity",
    "SearchEngine",
    "search_graph",
    "tokenize",
]
