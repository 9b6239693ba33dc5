#!/usr/bin/env python3
"""
Query a running kgmem WebSocket server.

Sends initialize, then either tools/list or a search_nodes call,
and prints the JSON response.

Usage:
    python scripts/query_memory.py "widget plan"
    python scripts/query_memory.py --list-tools
    python scripts/query_memory.py --url ws://127.0.0.1:8765 "widget"
"""

import argparse
import asyncio
import json
import sys

from websockets.asyncio.client import connect


async def call(url: str, method: str, params: dict) -> dict:
    """Open a connection, initialize, send one request and return its response."""
    async with connect(url) as websocket:
        await websocket.send(json.dumps({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {"clientInfo": {"name": "query-memory", "version": "1.0.0"}},
        }))
        await websocket.recv()
        await websocket.send(json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}))

        await websocket.send(json.dumps({"jsonrpc": "2.0", "id": 2, "method": method, "params": params}))
        return json.loads(await websocket.recv())


def main() -> int:
    parser = argparse.ArgumentParser(description="Query a kgmem MCP server")
    parser.add_argument("query", nargs="*", help="Search query")
    parser.add_argument("--url", default="ws://127.0.0.1:8765", help="Server WebSocket URL")
    parser.add_argument("--list-tools", action="store_true", help="List tools instead of searching")
    args = parser.parse_args()

    if args.list_tools:
        method, params = "tools/list", {}
    elif args.query:
        method = "tools/call"
        params = {"name": "search_nodes", "arguments": {"query": " ".join(args.query)}}
    else:
        parser.print_usage(sys.stderr)
        return 1

    try:
        response = asyncio.run(call(args.url, method, params))
    except OSError as e:
        print(f"Error connecting to {args.url}: {e}", file=sys.stderr)
        return 1

    print(json.dumps(response, indent=2, ensure_ascii=False))
    return 1 if "error" in response or response.get("result", {}).get("isError") else 0


if __name__ == "__main__":
    sys.exit(main())
