"""
MCP Server - Model Context Protocol server for Claude/Cursor integration.

Exposes the knowledge graph as an MCP tool server:
- Entity operations (create_entities, update_entities, delete_entities)
- Observation operations (add_observations, delete_observations)
- Relation operations (create_relations, update_relations, delete_relations)
- Query operations (read_graph, search_nodes, open_nodes)

Two transports share the same JSON-RPC handling: newline-delimited JSON
over stdio (the default for MCP clients) and a WebSocket server.
"""

import asyncio
import json
import sys
from typing import Any

import websockets
from websockets.asyncio.server import serve

from kgmem import __version__
from kgmem.core.config import settings, setup_logging, get_logger
from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.mcp import tools as mcp_tools

logger = get_logger("mcp_server")

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


def _relation_schema(description: str | None = None) -> dict:
    schema = {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "from": {
                    "type": "string",
                    "description": "The name of the entity where the relation starts"
                },
                "to": {
                    "type": "string",
                    "description": "The name of the entity where the relation ends"
                },
                "relationType": {
                    "type": "string",
                    "description": "The type of the relation"
                }
            },
            "required": ["from", "to", "relationType"]
        }
    }
    if description:
        schema["description"] = description
    return schema


class MCPServer:
    """
    MCP (Model Context Protocol) server for kgmem.

    Holds one KnowledgeGraphManager and passes it explicitly to every tool,
    so the memory file is whatever the manager's store points at.
    """

    def __init__(self, manager: KnowledgeGraphManager | None = None):
        self.manager = manager or KnowledgeGraphManager()
        self.tools = self._define_tools()

    def _define_tools(self) -> list[dict]:
        """Define available MCP tools."""
        return [
            # ===================
            # Entity Tools
            # ===================
            {
                "name": "create_entities",
                "description": "Create multiple new entities in the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "entities": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "name": {
                                        "type": "string",
                                        "description": "The name of the entity"
                                    },
                                    "entityType": {
                                        "type": "string",
                                        "description": "The type of the entity"
                                    },
                                    "observations": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                        "description": "An array of observation contents associated with the entity"
                                    }
                                },
                                "required": ["name", "entityType", "observations"]
                            }
                        }
                    },
                    "required": ["entities"]
                }
            },
            {
                "name": "update_entities",
                "description": "Update multiple existing entities in the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "entities": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "name": {
                                        "type": "string",
                                        "description": "The name of the entity to update"
                                    },
                                    "entityType": {
                                        "type": "string",
                                        "description": "The updated type of the entity"
                                    },
                                    "observations": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                        "description": "The updated array of observation contents"
                                    }
                                },
                                "required": ["name"]
                            }
                        }
                    },
                    "required": ["entities"]
                }
            },
            {
                "name": "delete_entities",
                "description": "Delete multiple entities and their associated relations from the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "entityNames": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "An array of entity names to delete"
                        }
                    },
                    "required": ["entityNames"]
                }
            },

            # ===================
            # Observation Tools
            # ===================
            {
                "name": "add_observations",
                "description": "Add new observations to existing entities in the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "observations": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "entityName": {
                                        "type": "string",
                                        "description": "The name of the entity to add the observations to"
                                    },
                                    "contents": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                        "description": "An array of observation contents to add"
                                    }
                                },
                                "required": ["entityName", "contents"]
                            }
                        }
                    },
                    "required": ["observations"]
                }
            },
            {
                "name": "delete_observations",
                "description": "Delete specific observations from entities in the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "deletions": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "entityName": {
                                        "type": "string",
                                        "description": "The name of the entity containing the observations"
                                    },
                                    "observations": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                        "description": "An array of observations to delete"
                                    }
                                },
                                "required": ["entityName", "observations"]
                            }
                        }
                    },
                    "required": ["deletions"]
                }
            },

            # ===================
            # Relation Tools
            # ===================
            {
                "name": "create_relations",
                "description": "Create multiple new relations between entities in the knowledge graph. Relations should be in active voice",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "relations": _relation_schema()
                    },
                    "required": ["relations"]
                }
            },
            {
                "name": "update_relations",
                "description": "Update multiple existing relations in the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "relations": _relation_schema()
                    },
                    "required": ["relations"]
                }
            },
            {
                "name": "delete_relations",
                "description": "Delete multiple relations from the knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "relations": _relation_schema("An array of relations to delete")
                    },
                    "required": ["relations"]
                }
            },

            # ===================
            # Query Tools
            # ===================
            {
                "name": "read_graph",
                "description": "Read the entire knowledge graph",
                "inputSchema": {
                    "type": "object",
                    "properties": {}
                }
            },
            {
                "name": "search_nodes",
                "description": "Search for nodes in the knowledge graph based on a query",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "The search query to match against entity names, types, and observation content"
                        }
                    },
                    "required": ["query"]
                }
            },
            {
                "name": "open_nodes",
                "description": "Open specific nodes in the knowledge graph by their names",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "names": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "An array of entity names to retrieve"
                        }
                    },
                    "required": ["names"]
                }
            },
        ]

    async def handle_message(self, message: dict) -> dict | None:
        """Handle an incoming MCP message. Notifications get no response."""
        method = message.get("method")
        params = message.get("params")
        if params is None:
            params = {}
        msg_id = message.get("id")

        if not isinstance(method, str) or not isinstance(params, dict):
            return self._error(msg_id, INVALID_REQUEST, "Invalid request")

        if method.startswith("notifications/"):
            logger.debug(f"Notification {method}")
            return None

        if method == "initialize":
            return self._result(msg_id, {
                "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
                "serverInfo": {
                    "name": "kgmem",
                    "version": __version__
                },
                "capabilities": {
                    "tools": {}
                }
            })

        elif method == "ping":
            return self._result(msg_id, {})

        elif method == "tools/list":
            return self._result(msg_id, {"tools": self.tools})

        elif method == "tools/call":
            tool_name = params.get("name")
            tool_args = params.get("arguments") or {}

            try:
                result = await self._execute_tool(tool_name, tool_args)
            except Exception as e:
                logger.error(f"Tool {tool_name} failed: {e}")
                return self._result(msg_id, {
                    "content": [{"type": "text", "text": f"Error: {e}"}],
                    "isError": True,
                })

            text = result if isinstance(result, str) else json.dumps(result, indent=2, ensure_ascii=False)
            return self._result(msg_id, {
                "content": [
                    {
                        "type": "text",
                        "text": text
                    }
                ]
            })

        else:
            return self._error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    async def handle_raw(self, raw: str | bytes) -> dict | None:
        """Decode one JSON-RPC message and handle it."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return self._error(None, PARSE_ERROR, "Parse error")
        if not isinstance(data, dict):
            return self._error(None, INVALID_REQUEST, "Invalid request")
        return await self.handle_message(data)

    async def respond(self, raw: str | bytes) -> dict | None:
        """Handle one raw message for a transport. Unexpected failures become an internal error."""
        try:
            return await self.handle_raw(raw)
        except Exception as e:
            logger.exception(f"Unhandled error for message {raw!r}")
            return self._error(None, INTERNAL_ERROR, f"Internal error: {e}")

    async def _execute_tool(self, name: str, args: dict) -> Any:
        """Execute an MCP tool. Exceptions propagate to handle_message."""
        manager = self.manager

        # Entity tools
        if name == "create_entities":
            return mcp_tools.create_entities(args.get("entities", []), manager=manager)

        elif name == "update_entities":
            return mcp_tools.update_entities(args.get("entities", []), manager=manager)

        elif name == "delete_entities":
            return mcp_tools.delete_entities(args.get("entityNames", []), manager=manager)

        # Observation tools
        elif name == "add_observations":
            return mcp_tools.add_observations(args.get("observations", []), manager=manager)

        elif name == "delete_observations":
            return mcp_tools.delete_observations(args.get("deletions", []), manager=manager)

        # Relation tools
        elif name == "create_relations":
            return mcp_tools.create_relations(args.get("relations", []), manager=manager)

        elif name == "update_relations":
            return mcp_tools.update_relations(args.get("relations", []), manager=manager)

        elif name == "delete_relations":
            return mcp_tools.delete_relations(args.get("relations", []), manager=manager)

        # Query tools
        elif name == "read_graph":
            return mcp_tools.read_graph(manager=manager)

        elif name == "search_nodes":
            return mcp_tools.search_nodes(args.get("query", ""), manager=manager)

        elif name == "open_nodes":
            return mcp_tools.open_nodes(args.get("names", []), manager=manager)

        else:
            raise ValueError(f"Unknown tool: {name}")

    @staticmethod
    def _result(msg_id: Any, result: dict) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    @staticmethod
    def _error(msg_id: Any, code: int, message: str) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}

    # ===================
    # Transports
    # ===================

    async def handle_connection(self, websocket):
        """Handle a WebSocket connection."""
        logger.info(f"New connection from {websocket.remote_address}")

        try:
            async for message in websocket:
                response = await self.respond(message)
                if response is not None:
                    await websocket.send(json.dumps(response))
        except websockets.exceptions.ConnectionClosed:
            logger.info("Connection closed")

    async def start(self, host: str | None = None, port: int | None = None):
        """Start the MCP server on a WebSocket."""
        host = host or settings.mcp_host
        port = port or settings.mcp_port

        logger.info(f"Starting MCP server on ws://{host}:{port} (memory: {self.manager.store.path})")

        async with serve(self.handle_connection, host, port):
            await asyncio.Future()  # Run forever

    async def serve_stdio(self, reader=None, writer=None):
        """Serve newline-delimited JSON-RPC on stdin/stdout until EOF."""
        reader = reader or sys.stdin
        writer = writer or sys.stdout
        loop = asyncio.get_running_loop()

        logger.info(f"MCP server running on stdio (memory: {self.manager.store.path})")

        while True:
            line = await loop.run_in_executor(None, reader.readline)
            if not line:
                break
            if not line.strip():
                continue

            response = await self.respond(line)
            if response is not None:
                writer.write(json.dumps(response, ensure_ascii=False) + "\n")
                writer.flush()

        logger.info("stdin closed, stopping")


def run_server(
    memory_path: str | None = None,
    transport: str | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Build a server for ``memory_path`` and run it on the chosen transport."""
    transport = transport or settings.mcp_transport
    # stdout carries protocol messages on stdio
    setup_logging(stream=sys.stderr if transport == "stdio" else None)

    server = MCPServer(KnowledgeGraphManager(memory_path=memory_path))

    try:
        if transport == "stdio":
            asyncio.run(server.serve_stdio())
        else:
            asyncio.run(server.start(host, port))
    except KeyboardInterrupt:
        logger.info("Server stopped")


def main():
    """Main entry point for MCP server."""
    run_server()


if __name__ == "__main__":
    main()
