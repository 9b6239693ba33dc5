"""
MCP Tools - Query and search tools.

Tools for retrieving and searching data:
- read_graph: The whole graph
- search_nodes: Ranked keyword search
- open_nodes: Named entities and the relations among them
"""

from typing import Any

from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.mcp.tools.base import _get_manager


def read_graph(manager: KnowledgeGraphManager | None = None) -> dict[str, Any]:
    """Read the entire knowledge graph."""
    return _get_manager(manager).read_graph().to_dict()


def search_nodes(query: str, manager: KnowledgeGraphManager | None = None) -> dict[str, Any]:
    """
    Search entities by name, type and observations.

    Returns:
        Matched entities, best first, plus every relation touching them.
        Blank or unmatched queries return empty lists.
    """
    return _get_manager(manager).search_nodes(query).to_dict()


def open_nodes(names: list[str], manager: KnowledgeGraphManager | None = None) -> dict[str, Any]:
    """
    Open entities by name.

    Returns:
        The named entities and only the relations between two of them
    """
    return _get_manager(manager).open_nodes(list(names)).to_dict()
