"""scriptorium ingest — embed a directory of text documents into the index.

Walks DOCS_DIR recursively for .txt / .md / .markdown / .text files and
replaces each file's vectors (delete-then-reinsert). A failing file is
reported and skipped; the run exits 0 once every file has been attempted.
Exit 1 is reserved for fatal startup errors (config, missing directory).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from scriptorium.cli.errors import (
    err_config,
    err_docs_dir_not_found,
    err_service,
    warn_no_text_files,
)
from scriptorium.cli.runtime import get_config, make_embedder, open_llm, open_store
from scriptorium.config import ConfigError, require_vector_store
from scriptorium.errors import ServiceError, ValidationError
from scriptorium.ingest.pipeline import IngestResult, ingest_directory, scan_documents
from scriptorium.rag.llm_client import validate_api_key

console = Console()

_RULE = "─" * 60
_DOUBLE_RULE = "═" * 60


def ingest_cmd(
    docs_dir: Annotated[
        Path,
        typer.Argument(help="Directory of documents to ingest (searched recursively)."),
    ] = Path("docs"),
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Characters per chunk (default from config: 1000)."),
    ] = None,
    overlap: Annotated[
        int | None,
        typer.Option("--overlap", help="Characters shared by consecutive chunks (default 200)."),
    ] = None,
) -> None:
    """Ingest every text document under DOCS_DIR into the vector index."""
    try:
        cfg = get_config()
        require_vector_store(cfg)
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)

    size = chunk_size if chunk_size is not None else cfg.chunking.chunk_size
    lap = overlap if overlap is not None else cfg.chunking.overlap

    resolved = docs_dir.expanduser().resolve()
    console.print(f"Scanning for documents in: {escape(str(resolved))}")
    try:
        files = scan_documents(resolved)
    except FileNotFoundError:
        console.print(err_docs_dir_not_found(str(resolved)))
        raise typer.Exit(1)

    if not files:
        console.print(warn_no_text_files(str(resolved)))
        raise typer.Exit(0)

    console.print(f"Found {len(files)} document(s) to ingest:\n")
    for i, f in enumerate(files, start=1):
        console.print(f"  {i}. {escape(str(f))}")

    try:
        validate_api_key(cfg.embedding.model)
        store = open_store(cfg)
    except (ConfigError, EnvironmentError) as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(err_service("ingestion", exc))
        raise typer.Exit(1)

    llm = open_llm(cfg)
    embedder = make_embedder(llm, cfg)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Embedding…", total=None)

            def _on_file(i: int, total: int, path: Path) -> None:
                prog.console.print(f"\n[bold][{i}/{total}] Processing:[/] {escape(str(path))}")
                prog.console.print(_RULE)
                prog.reset(task, total=None, description="Embedding…")

            def _on_progress(idx: int, total: int) -> None:
                prog.update(task, completed=idx + 1, total=total)

            def _on_done(result: IngestResult) -> None:
                _print_result(prog.console, result)

            def _on_error(path: Path, exc: Exception) -> None:
                prog.console.print(
                    f"  [red]✗ Failed to ingest[/] {escape(str(path))}: {escape(str(exc))}"
                )
                prog.console.print("  [dim]Continuing with next file…[/]")

            report = ingest_directory(
                resolved,
                store,
                embedder,
                chunk_size=size,
                overlap=lap,
                on_file=_on_file,
                on_progress=_on_progress,
                on_error=_on_error,
                on_done=_on_done,
            )
    except ValidationError as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        raise typer.Exit(1)
    finally:
        llm.close()
        store.close()

    console.print(f"\n{_DOUBLE_RULE}")
    if report.ok:
        console.print(f"[green]✓[/] All {len(report.files)} document(s) processed!")
    else:
        console.print(
            f"[green]✓[/] {len(report.succeeded)} document(s) ingested, "
            f"[red]✗ {len(report.failed)} failed[/]:"
        )
        for path, exc in report.failed:
            console.print(f"  - {escape(str(path))}: {escape(str(exc))}")


def _print_result(out: Console, result: IngestResult) -> None:
    if result.deleted:
        out.print(f"  [green]✓[/] Deleted {result.deleted} existing chunk(s)")
    else:
        out.print("  [dim]No existing chunks found (new file)[/]")
    if result.total_chunks == 0:
        out.print("  [yellow]✗ No chunks produced (empty document)[/]")
        return
    out.print(f"  [green]✓[/] Upserted {result.upserted}/{result.total_chunks} chunk(s)")
