"""
Core type definitions for kgmem.

These types represent the graph model:
- Entity: a named node with a free-text type and observations
- Relation: a typed, directed edge keyed by (from, to, relationType)
- KnowledgeGraph: the pair of collections persisted to the memory file

Python attributes are snake_case; the camelCase names used on the wire and
in the memory file are the field aliases.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current UTC timestamp with timezone."""
    return datetime.now(timezone.utc)


def unique(values: list[str]) -> list[str]:
    """Drop repeated strings, keeping first-occurrence order."""
    return list(dict.fromkeys(values))


# ============================================
# Errors
# ============================================

class KnowledgeGraphError(Exception):
    """Base class for knowledge graph errors."""


class EntityNotFoundError(KnowledgeGraphError, LookupError):
    """An operation required an entity that does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entity with name {name} not found")


class RelationNotFoundError(KnowledgeGraphError, LookupError):
    """An operation required a relation that does not exist."""

    def __init__(self, key: tuple[str, str, str]):
        self.key = key
        source, target, relation_type = key
        super().__init__(f"Relation {source} -[{relation_type}]-> {target} not found")


class GraphParseError(KnowledgeGraphError, ValueError):
    """The memory file holds a line that is not a valid record."""

    def __init__(self, path: Path, line_number: int, reason: str):
        self.path = path
        self.line_number = line_number
        super().__init__(f"{path}:{line_number}: {reason}")


# ============================================
# Base Model
# ============================================

class GraphModel(BaseModel):
    """Base for all graph types: accepts field names or aliases, ignores extras."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("created_at", mode="before", check_fields=False)
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        return value or None

    @field_validator("version", mode="before", check_fields=False)
    @classmethod
    def _missing_version(cls, value: Any) -> Any:
        return 1 if value is None else value

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================
# Graph Records
# ============================================

class Entity(GraphModel):
    """A node in the knowledge graph. ``name`` is the case-sensitive primary key."""

    name: str
    entity_type: str = Field(alias="entityType")
    observations: list[str] = Field(default_factory=list)

    created_at: datetime | None = Field(default=None, alias="createdAt")
    """Set on every create and update."""

    version: int = 1
    """Starts at 1, incremented on every update."""


class RelationKey(GraphModel):
    """The (from, to, relationType) triple identifying a relation."""

    from_: str = Field(alias="from")
    to: str
    relation_type: str = Field(alias="relationType")

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.from_, self.to, self.relation_type)


class Relation(RelationKey):
    """
    A directed edge between two entity names.

    Endpoints are not checked against existing entities.
    """

    created_at: datetime | None = Field(default=None, alias="createdAt")
    version: int = 1


class KnowledgeGraph(GraphModel):
    """Entities and relations as loaded from, or saved to, the memory file."""

    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [entity.to_dict() for entity in self.entities],
            "relations": [relation.to_dict() for relation in self.relations],
        }


# ============================================
# Operation Payloads
# ============================================

class EntityUpdate(GraphModel):
    """Fields to merge over an existing entity. ``None`` means unchanged."""

    name: str
    entity_type: str | None = Field(default=None, alias="entityType")
    observations: list[str] | None = None


RelationUpdate = RelationKey


class ObservationAddition(GraphModel):
    entity_name: str = Field(alias="entityName")
    contents: list[str]


class ObservationDeletion(GraphModel):
    entity_name: str = Field(alias="entityName")
    observations: list[str]


class AddedObservations(GraphModel):
    """What ``add_observations`` actually appended to one entity."""

    entity_name: str = Field(alias="entityName")
    added_observations: list[str] = Field(alias="addedObservations")
