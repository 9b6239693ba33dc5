"""
Core module - Configuration and types.
"""

from kgmem.core.config import settings
from kgmem.core.types import (
    AddedObservations,
    Entity,
    EntityNotFoundError,
    EntityUpdate,
    GraphParseError,
    KnowledgeGraph,
    KnowledgeGraphError,
    ObservationAddition,
    ObservationDeletion,
    Relation,
    RelationKey,
    RelationNotFoundError,
    RelationUpdate,
)

__all__ = [
    "settings",
    "AddedObservations",
    "Entity",
    "EntityNotFoundError",
    "EntityUpdate",
    "GraphParseError",
    "KnowledgeGraph",
    "KnowledgeGraphError",
    "ObservationAddition",
    "ObservationDeletion",
    "Relation",
    "RelationKey",
    "RelationNotFoundError",
    "RelationUpdate",
]
