"""
MCP Tools Package - Aggregates all tool modules.

One plain-data function per knowledge graph operation. Used by:
- The MCP server (stdio and WebSocket transports)
- The CLI import/export commands
- Direct calls

Every function takes JSON-like data, validates it into the graph types,
and returns JSON-like data with camelCase keys.
"""

from kgmem.mcp.tools.base import _get_manager, logger
from kgmem.mcp.tools.entity import (
    add_observations,
    create_entities,
    delete_entities,
    delete_observations,
    update_entities,
)
from kgmem.mcp.tools.query import (
    open_nodes,
    read_graph,
    search_nodes,
)
from kgmem.mcp.tools.relationship import (
    create_relations,
    delete_relations,
    update_relations,
)

__all__ = [
    "_get_manager",
    "logger",
    "create_entities",
    "create_relations",
    "add_observations",
    "delete_entities",
    "delete_observations",
    "delete_relations",
    "read_graph",
    "search_nodes",
    "open_nodes",
    "update_entities",
    "update_relations",
]
