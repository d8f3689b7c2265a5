"""Scriptorium CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from scriptorium.cli.ingest import ingest_cmd
from scriptorium.cli.pray import pray_cmd
from scriptorium.cli.query import query_cmd
from scriptorium.cli.remove import remove_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("scriptorium")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"scriptorium {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="scriptorium",
    help=(
        "Scriptorium — grounded answers and prayers from the Targossas corpus.\n\n"
        "  scriptorium ingest  Embed a directory of documents into the index.\n"
        "  scriptorium query   Answer a question from the ingested documents.\n"
        "  scriptorium pray    Compose a prayer, fetching reference documents as needed."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Scriptorium — grounded answers and prayers from the Targossas corpus."""


app.command("ingest")(ingest_cmd)
app.command("query")(query_cmd)
app.command("pray")(pray_cmd)
app.command("remove")(remove_cmd)


if __name__ == "__main__":
    app()
