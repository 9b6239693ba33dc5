"""
MCP Tools - Base module with the manager singleton and payload helpers.

This module provides the foundation for all MCP tools:
- The default KnowledgeGraphManager (_get_manager)
- Validation of plain request data into graph types
- Serialization of results back to plain data
"""

from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel

from kgmem.core.config import get_logger
from kgmem.core.types import GraphModel
from kgmem.graph.manager import KnowledgeGraphManager

logger = get_logger("mcp.tools")

ModelT = TypeVar("ModelT", bound=BaseModel)


# ============================================
# Singleton manager
# ============================================

_manager: KnowledgeGraphManager | None = None


def _get_manager(manager: KnowledgeGraphManager | None = None) -> KnowledgeGraphManager:
    """Return ``manager`` if given, else the default one for the configured memory path."""
    global _manager
    if manager is not None:
        return manager
    if _manager is None:
        _manager = KnowledgeGraphManager()
        logger.debug(f"Using memory file {_manager.store.path}")
    return _manager


# ============================================
# Payload helpers
# ============================================

def _parse(model: type[ModelT], items: Iterable[Any]) -> list[ModelT]:
    """Validate each plain dict (or model instance) into ``model``."""
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]


def _dump(items: Iterable[GraphModel]) -> list[dict[str, Any]]:
    return [item.to_dict() for item in items]


__all__ = [
    "_get_manager",
    "_parse",
    "_dump",
    "logger",
]
