"""
Storage Layer - JSONL memory file.

The memory file is the only persistent state. All storage operations
should go through GraphStore.
"""

from kgmem.storage.graph import GraphStore

__all__ = [
    "GraphStore",
]
