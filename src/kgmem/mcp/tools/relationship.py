"""
MCP Tools - Relation management tools.

Tools for managing relations between entities:
- create_relations: Add new relations (existing keys are skipped)
- update_relations: Bump existing relations
- delete_relations: Remove relations
"""

from typing import Any

from kgmem.core.types import Relation, RelationKey, RelationUpdate
from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.mcp.tools.base import _dump, _get_manager, _parse


def create_relations(
    relations: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> list[dict[str, Any]]:
    """
    Create relations between entities.

    Idempotent - a relation with the same from, to and relationType is skipped.
    Endpoints are not required to exist.

    Returns:
        Only the relations actually created
    """
    created = _get_manager(manager).create_relations(_parse(Relation, relations))
    return _dump(created)


def update_relations(
    relations: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> list[dict[str, Any]]:
    """
    Update existing relations.

    Raises:
        RelationNotFoundError: if any relation is unknown (nothing is updated)
    """
    updated = _get_manager(manager).update_relations(_parse(RelationUpdate, relations))
    return _dump(updated)


def delete_relations(
    relations: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> str:
    """Delete relations by from, to and relationType."""
    _get_manager(manager).delete_relations(_parse(RelationKey, relations))
    return "Relations deleted successfully"
