"""
MCP Tools - Entity and observation tools.

Tools for managing entities:
- create_entities: Add new entities (existing names are skipped)
- update_entities: Merge fields over existing entities
- delete_entities: Remove entities and their relations
- add_observations: Append observations to existing entities
- delete_observations: Remove observations from entities
"""

from typing import Any

from kgmem.core.types import (
    Entity,
    EntityUpdate,
    ObservationAddition,
    ObservationDeletion,
)
from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.mcp.tools.base import _dump, _get_manager, _parse


def create_entities(
    entities: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> list[dict[str, Any]]:
    """
    Create entities in the knowledge graph.

    Idempotent - an entity whose name already exists is skipped.

    Args:
        entities: Dicts with name, entityType and observations

    Returns:
        Only the entities actually created
    """
    created = _get_manager(manager).create_entities(_parse(Entity, entities))
    return _dump(created)


def update_entities(
    entities: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> list[dict[str, Any]]:
    """
    Update existing entities.

    Args:
        entities: Dicts with name and optionally entityType and observations

    Returns:
        The updated entities, with bumped version

    Raises:
        EntityNotFoundError: if any name is unknown (nothing is updated)
    """
    updated = _get_manager(manager).update_entities(_parse(EntityUpdate, entities))
    return _dump(updated)


def delete_entities(
    entity_names: list[str],
    manager: KnowledgeGraphManager | None = None,
) -> str:
    """Delete entities and every relation touching them."""
    _get_manager(manager).delete_entities(list(entity_names))
    return "Entities deleted successfully"


def add_observations(
    observations: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> list[dict[str, Any]]:
    """
    Add observations to existing entities.

    Args:
        observations: Dicts with entityName and contents

    Returns:
        Dicts with entityName and the addedObservations that were new

    Raises:
        EntityNotFoundError: if any entity is unknown (nothing is added)
    """
    added = _get_manager(manager).add_observations(_parse(ObservationAddition, observations))
    return _dump(added)


def delete_observations(
    deletions: list[dict[str, Any]],
    manager: KnowledgeGraphManager | None = None,
) -> str:
    """Delete observations from entities. Unknown entities are skipped."""
    _get_manager(manager).delete_observations(_parse(ObservationDeletion, deletions))
    return "Observations deleted successfully"
