"""Prompt templates for grounded query answering."""

from __future__ import annotations

from scriptorium.store.models import Match

CONTEXT_SEPARATOR = "\n\n---\n\n"

_GROUNDED_PROMPT = """\
You are a helpful assistant that answers questions based on the provided context. \
Use only the information from the context to answer the question. \
If the context doesn't contain enough information to answer the question, say so.

Context:
{context}

Question: {query}

Answer:"""


def build_context(matches: list[Match]) -> str:
    """Join match texts best-first, each under a ``[Source i: path]`` header.

    Matches without metadata contribute an empty body under an
    ``unknown`` source header.
    """
    blocks: list[str] = []
    for i, match in enumerate(matches, start=1):
        source = match.metadata.source if match.metadata else "unknown"
        text = match.metadata.text if match.metadata else ""
        blocks.append(f"[Source {i}: {source}]\n{text}")
    return CONTEXT_SEPARATOR.join(blocks)


def build_grounded_prompt(query: str, context: str) -> str:
    return _GROUNDED_PROMPT.format(context=context, query=query)
