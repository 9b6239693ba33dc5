"""
kgmem CLI - Command-line interface.

Commands:
- kgmem serve → Run the MCP server (stdio or WebSocket)
- kgmem import graph.json → Create entities and relations from a JSON file
- kgmem export graph.json → Write the whole graph to a JSON file
- kgmem search "query" → Ranked search
- kgmem open NAME... → Show entities and the relations among them
- kgmem status → Memory file and counts
"""

import json
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kgmem.core.config import settings, setup_logging
from kgmem.core.types import KnowledgeGraph
from kgmem.graph.manager import KnowledgeGraphManager
from kgmem.mcp import tools as mcp_tools

app = typer.Typer(
    name="kgmem",
    help="kgmem - Knowledge graph memory server and CLI",
    no_args_is_help=True,
)
console = Console()


def get_manager(ctx: typer.Context) -> KnowledgeGraphManager:
    """Build a manager for the --memory-path given to the app."""
    return KnowledgeGraphManager(memory_path=ctx.obj.get("memory_path"))


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(code=1)


def print_graph(graph: KnowledgeGraph, title: str, scores: dict[str, int] | None = None) -> None:
    """Render entities and relations as tables."""
    if not graph.entities:
        console.print("[dim]No entities found[/dim]")
        return

    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Observations", style="white")
    table.add_column("Version", style="dim")
    if scores is not None:
        table.add_column("Score", style="yellow")

    for entity in graph.entities:
        row = [
            escape(entity.name),
            escape(entity.entity_type),
            escape("\n".join(entity.observations)) or "-",
            str(entity.version),
        ]
        if scores is not None:
            row.append(str(scores.get(entity.name, 0)))
        table.add_row(*row)

    console.print(table)

    if graph.relations:
        relations = Table(title="Relations")
        relations.add_column("From", style="cyan")
        relations.add_column("Relation", style="magenta")
        relations.add_column("To", style="cyan")
        for relation in graph.relations:
            relations.add_row(escape(relation.from_), escape(relation.relation_type), escape(relation.to))
        console.print(relations)


@app.callback()
def main(
    ctx: typer.Context,
    memory_path: Optional[Path] = typer.Option(
        None, "--memory-path", "-m", help="Path to the memory file"
    ),
):
    """Knowledge graph memory backed by a JSONL file."""
    ctx.obj = {"memory_path": memory_path}


@app.command()
def serve(
    ctx: typer.Context,
    transport: str = typer.Option(
        settings.mcp_transport, "--transport", "-t", help="stdio or websocket"
    ),
    host: Optional[str] = typer.Option(None, help="WebSocket host"),
    port: Optional[int] = typer.Option(None, help="WebSocket port"),
):
    """Run as MCP server."""
    from kgmem.interface.mcp_server import run_server

    if transport not in ("stdio", "websocket"):
        fail(f"Unknown transport: {transport}")

    run_server(
        memory_path=ctx.obj.get("memory_path"),
        transport=transport,
        host=host,
        port=port,
    )


@app.command("import")
def import_graph(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="JSON file with entities and relations"),
):
    """Import a graph from a JSON file. Existing entities and relations are skipped."""
    setup_logging()

    manager = get_manager(ctx)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        entities = mcp_tools.create_entities(data.get("entities", []), manager=manager)
        relations = mcp_tools.create_relations(data.get("relations", []), manager=manager)
    except Exception as e:
        fail(f"importing graph: {e}")

    console.print(f"[green]✓ Imported {len(entities)} entities and {len(relations)} relations.[/green]")


@app.command("export")
def export_graph(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Destination JSON file"),
):
    """Export the graph to a JSON file."""
    setup_logging()

    manager = get_manager(ctx)
    try:
        graph = mcp_tools.read_graph(manager=manager)
        path.write_text(json.dumps(graph, indent=2, ensure_ascii=False), encoding="utf-8")
    except Exception as e:
        fail(f"exporting graph: {e}")

    console.print(f"[green]✓ Graph exported to {path}[/green]")


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search query"),
    explain: bool = typer.Option(False, "--explain", help="Show scores"),
):
    """Search entities by name, type and observations."""
    setup_logging()

    manager = get_manager(ctx)
    try:
        with console.status("Searching..."):
            result = manager.search_nodes(query)
            scores = None
            if explain:
                scored = manager.search_engine.score(manager.read_graph(), query)
                scores = {s.entity.name: s.score for s in scored}
    except Exception as e:
        fail(str(e))

    print_graph(result, f"Results for {escape(repr(query))}", scores)


@app.command("open")
def open_nodes(
    ctx: typer.Context,
    names: List[str] = typer.Argument(..., help="Entity names"),
):
    """Show entities and the relations among them."""
    setup_logging()

    try:
        result = get_manager(ctx).open_nodes(names)
    except Exception as e:
        fail(str(e))

    print_graph(result, "Entities")


@app.command()
def status(ctx: typer.Context):
    """Show memory file status."""
    setup_logging()

    manager = get_manager(ctx)
    console.print("[bold]kgmem Status[/bold]\n")
    console.print(f"Memory file: {manager.store.path}")
    console.print(f"  Exists: {'✓' if manager.store.exists() else '✗'}")

    try:
        graph = manager.read_graph()
    except Exception as e:
        fail(str(e))

    console.print(f"\nEntities: {len(graph.entities)}")
    console.print(f"Relations: {len(graph.relations)}")


if __name__ == "__main__":
    app()
