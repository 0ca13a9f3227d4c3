"""
CLI for the document helper.

Commands:
    dh get COLLECTION ID - Fetch one document
    dh put COLLECTION JSON - Write a full document (must carry an id)
    dh edit COLLECTION ID JSON - Merge fields into a document
    dh delete COLLECTION ID - Delete a document
    dh query COLLECTION [--where JSON] [--order-by JSON] [--limit N]
    dh list COLLECTION - Fetch every document
    dh config - Show current configuration
    dh version - Print version

Document commands need STORE_BACKEND=sqlite. The memory backend would
forget every write as soon as the command exits.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from dochelper import __version__
from dochelper.accessor import EntityAccessor
from dochelper.actions import Actions, create_actions
from dochelper.cache import CacheRegistry
from dochelper.config import Settings, clear_settings_cache, get_settings
from dochelper.exceptions import ConfigurationError, DHError
from dochelper.logging import setup_logging
from dochelper.stores import open_store
from dochelper.types import WriteResult

app = typer.Typer(
    name="dh",
    help="Document helper - per-collection CRUD over a document store",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValueError:
        return None


def _parse_json(raw: str, name: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        error_console.print(f"[red]Error:[/red] {name} is not valid JSON: {e}")
        raise typer.Exit(1) from e


def _run(collection: str, operation: Callable[[Actions], Awaitable[Any]]) -> Any:
    """Open the configured store, run one action, and close the store."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'dh config' to see what's wrong."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    if settings.store_backend == "memory":
        error = ConfigurationError(
            "The CLI needs a persistent store; set STORE_BACKEND=sqlite",
            context={"store_backend": settings.store_backend},
        )
        error_console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1)

    async def runner() -> Any:
        store = await open_store(settings)
        try:
            accessor = EntityAccessor(
                collection,
                store=store,
                registry=CacheRegistry(),
                use_cache=settings.use_cache,
            )
            return await operation(create_actions(accessor))
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except DHError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _print_result(result: Any) -> None:
    if isinstance(result, WriteResult):
        console.print(
            f"[green]OK[/green] {result.operation} {result.collection}/{result.doc_id}"
        )
    elif result is None:
        console.print("[yellow]Not found[/yellow]")
    else:
        console.print_json(data=result, default=str)


@app.command()
def get(
    collection: Annotated[str, typer.Argument(help="Collection name")],
    doc_id: Annotated[str, typer.Argument(help="Document id")],
) -> None:
    """Fetch one document by id."""
    _print_result(_run(collection, lambda actions: actions.get_by_id(doc_id)))


@app.command()
def put(
    collection: Annotated[str, typer.Argument(help="Collection name")],
    document: Annotated[str, typer.Argument(help="Document as JSON, including its id")],
) -> None:
    """Write a full document, replacing any existing one."""
    payload = _parse_json(document, "document")
    _print_result(_run(collection, lambda actions: actions.add(payload)))


@app.command()
def edit(
    collection: Annotated[str, typer.Argument(help="Collection name")],
    doc_id: Annotated[str, typer.Argument(help="Document id")],
    fields: Annotated[str, typer.Argument(help="Fields to merge, as JSON")],
) -> None:
    """Merge fields into an existing document."""
    payload = _parse_json(fields, "fields")
    _print_result(_run(collection, lambda actions: actions.edit_by_id(doc_id, payload)))


@app.command()
def delete(
    collection: Annotated[str, typer.Argument(help="Collection name")],
    doc_id: Annotated[str, typer.Argument(help="Document id")],
) -> None:
    """Delete a document."""
    _print_result(_run(collection, lambda actions: actions.delete_by_id(doc_id)))


@app.command()
def query(
    collection: Annotated[str, typer.Argument(help="Collection name")],
    where: Annotated[
        Optional[str],
        typer.Option("--where", "-w", help='Filter as JSON, e.g. \'[{"status": 1}, ["age", ">=", 18]]\''),
    ] = None,
    order_by: Annotated[
        Optional[str],
        typer.Option("--order-by", "-s", help='Ordering as JSON, e.g. \'[["createdAt", "desc"]]\''),
    ] = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", help="Maximum number of documents"),
    ] = None,
) -> None:
    """Run a filtered, ordered, limited query."""
    descriptor: dict[str, Any] = {}
    if where is not None:
        descriptor["where"] = _parse_json(where, "--where")
    if order_by is not None:
        # Bare field names need not be quoted
        descriptor["order_by"] = (
            _parse_json(order_by, "--order-by")
            if order_by.lstrip().startswith(("[", '"'))
            else order_by
        )
    if limit is not None:
        descriptor["limit"] = limit

    _print_result(_run(collection, lambda actions: actions.get_by(descriptor)))


@app.command(name="list")
def list_documents(
    collection: Annotated[str, typer.Argument(help="Collection name")],
) -> None:
    """Fetch every document in a collection."""
    _print_result(_run(collection, lambda actions: actions.get_all()))


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]Document Helper Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Supported environment variables:")
        error_console.print("  - STORE_BACKEND (memory | sqlite; the CLI needs sqlite)")
        error_console.print("  - SQLITE_PATH, USE_CACHE, LOG_LEVEL, LOG_FILE")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"doc-helper version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
