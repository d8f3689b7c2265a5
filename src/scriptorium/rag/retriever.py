"""Retrieval query engine: embed → nearest neighbours → grounded streaming answer.

  1. Embed the query with the same model used at ingest.
  2. query_similar() against the index (top_k, metadata included).
  3. No matches → QueryAnswer(found=False); not an error.
  4. Build the context block best-first and stream the model's answer.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from scriptorium.errors import ValidationError
from scriptorium.ingest.embedder import Embedder
from scriptorium.rag.llm_client import LLMClient
from scriptorium.rag.templates import build_context, build_grounded_prompt
from scriptorium.store.base import BaseVectorStore
from scriptorium.store.models import Match

DEFAULT_TOP_K = 5


@dataclass
class QueryAnswer:
    """Result of a grounded query.

    Attributes:
        query: The user's question.
        matches: Retrieved chunks, best-first.
        stream: Lazy, single-use iterator of answer fragments; None when
            nothing relevant was found.
    """

    query: str
    matches: list[Match] = field(default_factory=list)
    stream: Iterator[str] | None = None

    @property
    def found(self) -> bool:
        return bool(self.matches)


def retrieve(
    query: str,
    embedder: Embedder,
    store: BaseVectorStore,
    top_k: int = DEFAULT_TOP_K,
) -> list[Match]:
    """Return at most *top_k* matches for *query*, highest score first.

    Raises:
        ValidationError: If *query* is blank or *top_k* < 1.
        ServiceError: On embedding or index failure.
    """
    if not query.strip():
        raise ValidationError("query must not be empty")
    if top_k < 1:
        raise ValidationError(f"top_k must be >= 1, got {top_k}")

    vector = embedder.embed(query)
    matches = store.query_similar(vector, top_k=top_k, include_metadata=True)
    return sorted(matches, key=lambda m: m.score, reverse=True)[:top_k]


def answer(
    query: str,
    embedder: Embedder,
    store: BaseVectorStore,
    client: LLMClient,
    model: str,
    top_k: int = DEFAULT_TOP_K,
) -> QueryAnswer:
    """Retrieve context for *query* and open a streaming grounded answer.

    The generation request is only sent when the caller starts consuming
    ``QueryAnswer.stream``.
    """
    matches = retrieve(query, embedder, store, top_k=top_k)
    if not matches:
        return QueryAnswer(query=query)

    prompt = build_grounded_prompt(query, build_context(matches))
    stream = client.stream(model, [{"role": "user", "content": prompt}])
    return QueryAnswer(query=query, matches=matches, stream=stream)
