"""
MCP Package - Model Context Protocol tool surface for kgmem.

Design Principles:
1. Idempotent Creates: Calling the same create twice won't create duplicates
2. All-or-nothing Updates: A batch with one unknown key changes nothing
3. Plain Data In, Plain Data Out: Tools never expose graph model instances
"""

from kgmem.mcp import tools

__all__ = [
    "tools",
]
