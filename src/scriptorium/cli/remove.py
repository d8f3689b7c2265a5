"""scriptorium remove — delete every vector stored for one source file.

Re-ingesting a file replaces its vectors automatically; deleting a file from
the corpus does not. Use this command to clean up after a removed document.

Usage:
  scriptorium remove docs/old_notes.md
  scriptorium remove docs/old_notes.md --yes
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from scriptorium.cli.errors import err_config, err_service, err_source_not_found
from scriptorium.cli.runtime import get_config, open_store
from scriptorium.config import ConfigError
from scriptorium.errors import ServiceError
from scriptorium.store.ids import canonical_source

console = Console()


def remove_cmd(
    source: Annotated[str, typer.Argument(help="Source file path as it was ingested.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove all vectors for SOURCE from the index."""
    try:
        cfg = get_config()
        store = open_store(cfg)
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(err_service("remove", exc))
        raise typer.Exit(1)

    resolved = canonical_source(source)
    try:
        ids = [m.id for m in store.query_by_source(resolved)]

        if not ids:
            console.print(err_source_not_found(resolved))
            raise typer.Exit(0)

        console.print(f"\nRemove source: [bold]{escape(resolved)}[/]")
        console.print(f"  Vectors: {len(ids)}")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        store.delete_many(ids)
        console.print(f"\n[green]✓[/] Removed: {escape(resolved)}")
        console.print(f"  {len(ids)} vector(s) deleted")
    except ServiceError as exc:
        console.print(err_service("remove", exc))
        raise typer.Exit(1)
    finally:
        store.close()
