"""scriptorium pray — compose a prayer with the document-fetching tool loop.

Usage:
  scriptorium pray "your prayer prompt here"
  scriptorium pray "your prompt" --model ollama_chat/qwen2.5:7b

The model sees a catalog of the Targossas reference documents and fetches
the ones it needs before writing. Only the prayer is printed to stdout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from scriptorium.agent.registry import DocumentId, DocumentRegistry
from scriptorium.agent.tool_loop import run_tool_loop
from scriptorium.cli.errors import (
    err_config,
    err_document_unreadable,
    err_invalid_tool_call,
    err_no_prompt,
    err_no_response,
    err_service,
)
from scriptorium.cli.runtime import get_config, open_llm
from scriptorium.config import ConfigError
from scriptorium.errors import DegenerateModelResponse, ServiceError, ValidationError
from scriptorium.rag.llm_client import validate_api_key

console = Console()
status = Console(stderr=True)


def pray_cmd(
    words: Annotated[
        list[str] | None,
        typer.Argument(help="What the prayer should be about."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Tool-capable chat model (LiteLLM provider/model)."),
    ] = None,
    docs_dir: Annotated[
        Path | None,
        typer.Option("--docs-dir", help="Directory holding the reference documents."),
    ] = None,
    max_iterations: Annotated[
        int | None,
        typer.Option("--max-iterations", help="Maximum model calls before giving up (default 10)."),
    ] = None,
) -> None:
    """Compose a prayer about PROMPT in the style of the Breviary of Targossas."""
    prompt = " ".join(words or []).strip()
    if not prompt:
        console.print(err_no_prompt())
        raise typer.Exit(1)

    try:
        cfg = get_config()
        chat_model = model or cfg.pray.model
        validate_api_key(chat_model)
    except (ConfigError, EnvironmentError) as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)

    registry = DocumentRegistry(docs_dir if docs_dir is not None else Path(cfg.pray.docs_dir))
    cap = max_iterations if max_iterations is not None else cfg.pray.max_iterations
    if cap < 1:
        console.print(f"[red]Error:[/] --max-iterations must be >= 1, got {cap}")
        raise typer.Exit(1)

    def _on_fetch(doc_id: DocumentId) -> None:
        status.print(f"[dim]↳ fetched {doc_id.value}[/]")

    llm = open_llm(cfg)
    try:
        result = run_tool_loop(
            prompt,
            llm,
            chat_model,
            registry,
            max_iterations=cap,
            on_fetch=_on_fetch,
        )
    except DegenerateModelResponse as exc:
        console.print(err_no_response(exc))
        raise typer.Exit(1)
    except ValidationError as exc:
        console.print(err_invalid_tool_call(exc))
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(err_service("prayer composition", exc))
        raise typer.Exit(1)
    except OSError as exc:
        console.print(err_document_unreadable(exc))
        raise typer.Exit(1)
    finally:
        llm.close()

    typer.echo(result.content)
