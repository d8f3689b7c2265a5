"""scriptorium query — answer a question from the ingested documents.

Usage:
  scriptorium query "your question here"
  scriptorium query "your question" --topK 10
  scriptorium query "your question" --model ollama/llama3.2:3b

The answer is streamed to stdout as the model produces it.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from scriptorium.cli.errors import err_config, err_no_query, err_service
from scriptorium.cli.runtime import get_config, make_embedder, open_llm, open_store
from scriptorium.config import ConfigError
from scriptorium.errors import ServiceError, ValidationError
from scriptorium.rag.llm_client import validate_api_key
from scriptorium.rag.retriever import answer

console = Console()


def query_cmd(
    words: Annotated[
        list[str] | None,
        typer.Argument(help="Question text (quote it, or pass several words)."),
    ] = None,
    top_k: Annotated[
        int | None,
        typer.Option("--topK", "--top-k", "-k", help="Number of chunks to retrieve (default 5)."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Generation model (LiteLLM provider/model)."),
    ] = None,
) -> None:
    """Answer QUERY using only the most similar ingested chunks."""
    query = " ".join(words or []).strip()
    if not query:
        console.print(err_no_query())
        raise typer.Exit(1)

    try:
        cfg = get_config()
        k = top_k if top_k is not None else cfg.retrieval.top_k
        gen_model = model or cfg.retrieval.model
        validate_api_key(cfg.embedding.model)
        validate_api_key(gen_model)
        store = open_store(cfg)
    except (ConfigError, EnvironmentError) as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(err_service("query", exc))
        raise typer.Exit(1)

    llm = open_llm(cfg)
    try:
        result = answer(query, make_embedder(llm, cfg), store, llm, gen_model, top_k=k)

        if not result.found:
            console.print("No relevant documents found.")
            return

        console.print(f"Found {len(result.matches)} relevant document(s)\n")
        for fragment in result.stream or ():
            typer.echo(fragment, nl=False)
        typer.echo("\n")
    except ValidationError as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(err_service("query", exc))
        raise typer.Exit(1)
    finally:
        llm.close()
        store.close()
