"""
Interface module - All external interfaces to kgmem.

This module contains:
- cli.py: Command-line interface
- mcp_server.py: MCP (Model Context Protocol) server
"""
