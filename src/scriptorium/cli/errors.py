"""Scriptorium rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from scriptorium.cli.errors import err_config
    console.print(err_config(exc))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from scriptorium.ingest.pipeline import TEXT_EXTENSIONS


def err_config(exc: Exception) -> str:
    """Configuration missing or invalid — fatal at startup."""
    return (
        f"[red]Error:[/] {escape(str(exc))}\n"
        "  Set the variables in your shell or in a .env file, e.g.:\n"
        "    PINECONE_API_KEY=...\n"
        "    PINECONE_INDEX_NAME=...\n"
        "    PINECONE_ENVIRONMENT=..."
    )


def err_no_query() -> str:
    return (
        "[red]Error:[/] Please provide a query string.\n\n"
        "  Usage: scriptorium query \"your question here\"\n"
        "     or: scriptorium query \"your question\" --topK 10\n"
        "     or: scriptorium query \"your question\" --model ollama/llama3.2:3b"
    )


def err_no_prompt() -> str:
    return (
        "[red]Error:[/] Please provide a prayer prompt.\n\n"
        "  Usage: scriptorium pray \"your prayer prompt here\"\n"
        "     or: scriptorium pray \"your prompt\" --model ollama_chat/qwen2.5:7b"
    )


def err_service(action: str, exc: Exception) -> str:
    """An external model or vector store call failed."""
    return (
        f"[red]Error during {action}:[/] {escape(str(exc))}\n"
        "  Check that the model server is running (ollama serve) and that the\n"
        "  Pinecone index is reachable, then retry."
    )


def err_docs_dir_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] Documents directory not found: '{escape(path)}'\n"
        "  Run:  scriptorium ingest <docs-dir>"
    )


def warn_no_text_files(path: str) -> str:
    exts = ", ".join(sorted(TEXT_EXTENSIONS))
    return (
        f"[yellow]No text files found in:[/] {escape(path)}\n"
        f"  Supported extensions: {exts}"
    )


def err_no_response(exc: Exception) -> str:
    """Model produced neither a prayer nor a document request."""
    return (
        f"[red]Error:[/] {escape(str(exc))}.\n"
        "  Retry, or choose a tool-capable model with --model."
    )


def err_invalid_tool_call(exc: Exception) -> str:
    return (
        f"[red]Error:[/] The model made an invalid tool call: {escape(str(exc))}\n"
        "  Retry, or choose a different model with --model."
    )


def err_document_unreadable(exc: Exception) -> str:
    return (
        f"[red]Error:[/] Reference document could not be read: {escape(str(exc))}\n"
        "  Check --docs-dir (or pray.docs_dir in scriptorium.yaml)."
    )


def err_source_not_found(source: str) -> str:
    """No vectors stored for the given source path."""
    return (
        f"[yellow]Source not found:[/] '{escape(source)}' has no vectors in the index.\n"
        "  Paths are matched after resolving to an absolute path."
    )
