"""Shared pytest fixtures and in-process doubles for the external services."""

from __future__ import annotations

import hashlib
import math
from collections.abc import Iterator, Sequence

import pytest
import yaml

from scriptorium.errors import ChatServiceError, EmbeddingServiceError, VectorStoreError
from scriptorium.ingest.embedder import Embedder
from scriptorium.rag.llm_client import ChatMessage, ToolCall
from scriptorium.store.base import MAX_TOP_K, BaseVectorStore, batched
from scriptorium.store.models import Match, VectorRecord

DIMS = 8


def fake_vector(text: str, dims: int = DIMS) -> list[float]:
    """Deterministic pseudo-embedding derived from a hash of *text*."""
    digest = hashlib.sha256(text.encode()).digest()
    return [digest[i] / 255.0 + 0.01 for i in range(dims)]


class InMemoryVectorStore(BaseVectorStore):
    """Dict-backed vector store with optional failure injection.

    Attributes:
        fail_sources: Upserts of records whose source contains any of these
            substrings raise VectorStoreError.
        upsert_calls: Sizes of every upsert request, in order.
    """

    def __init__(self, dimensions: int = DIMS) -> None:
        self.dimensions = dimensions
        self.records: dict[str, VectorRecord] = {}
        self.fail_sources: set[str] = set()
        self.upsert_calls: list[int] = []
        self.deleted_ids: list[str] = []
        self.closed = False

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        for batch in batched(records):
            self.upsert_calls.append(len(batch))
            for rec in batch:
                if any(s in rec.metadata.source for s in self.fail_sources):
                    raise VectorStoreError(f"simulated failure for {rec.metadata.source}")
                if len(rec.values) != self.dimensions:
                    raise VectorStoreError("dimension mismatch")
                self.records[rec.id] = rec
        return len(records)

    def query_by_source(self, source: str) -> list[Match]:
        hits = [
            Match(id=r.id, score=0.0)
            for r in self.records.values()
            if r.metadata.source == source
        ]
        return hits[:MAX_TOP_K]

    def delete_many(self, ids: Sequence[str]) -> None:
        for rid in ids:
            self.deleted_ids.append(rid)
            self.records.pop(rid, None)

    def query_similar(
        self,
        vector: list[float],
        top_k: int,
        include_metadata: bool = True,
    ) -> list[Match]:
        scored = [
            Match(
                id=r.id,
                score=_cosine(vector, r.values),
                metadata=r.metadata if include_metadata else None,
            )
            for r in self.records.values()
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    def close(self) -> None:
        self.closed = True

    def sources(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.records.values():
            counts[r.metadata.source] = counts.get(r.metadata.source, 0) + 1
        return counts


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeLLMClient:
    """Scripted stand-in for LLMClient.

    Args:
        replies: ChatMessage objects returned by successive chat() calls.
        fragments: Text fragments yielded by stream().
        fail_embed_on: Substrings that make embed() raise EmbeddingServiceError.
    """

    def __init__(
        self,
        replies: list[ChatMessage] | None = None,
        fragments: list[str] | None = None,
        fail_embed_on: set[str] | None = None,
    ) -> None:
        self.replies = list(replies or [])
        self.fragments = list(fragments or [])
        self.fail_embed_on = fail_embed_on or set()
        self.chat_calls: list[list[dict]] = []
        self.stream_calls: list[list[dict]] = []
        self.embed_calls: list[str] = []
        self.closed = False

    def queue(self, message: ChatMessage) -> FakeLLMClient:
        self.replies.append(message)
        return self

    def queue_tool_call(self, *document_ids: str) -> FakeLLMClient:
        """Queue an assistant reply requesting fetch_document for each id."""
        return self.queue(
            ChatMessage(
                role="assistant",
                content="",
                tool_calls=[
                    ToolCall(
                        id=f"call_{i}",
                        name="fetch_document",
                        arguments=f'{{"document_id": "{doc_id}"}}',
                    )
                    for i, doc_id in enumerate(document_ids)
                ],
            )
        )

    def queue_content(self, text: str) -> FakeLLMClient:
        return self.queue(ChatMessage(role="assistant", content=text))

    def embed(self, model: str, text: str) -> list[float]:
        self.embed_calls.append(text)
        if any(s in text for s in self.fail_embed_on):
            raise EmbeddingServiceError("simulated embedding failure")
        return fake_vector(text)

    def chat(self, model, messages, tools=None, temperature=None) -> ChatMessage:
        self.chat_calls.append([dict(m) for m in messages])
        if not self.replies:
            raise ChatServiceError("no scripted reply left")
        return self.replies.pop(0)

    def stream(self, model, messages) -> Iterator[str]:
        self.stream_calls.append(messages)
        yield from self.fragments

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def dims() -> int:
    return DIMS


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def embedder(llm) -> Embedder:
    return Embedder(llm, "fake/embed", DIMS)


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Working directory whose scriptorium.yaml matches the fake embedder."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "scriptorium.yaml").write_text(
        yaml.dump({"embedding": {"model": "ollama/fake", "dimensions": DIMS}}), encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def pinecone_env(monkeypatch):
    monkeypatch.setenv("PINECONE_API_KEY", "test-key")
    monkeypatch.setenv("PINECONE_INDEX_NAME", "test-index")
    monkeypatch.setenv("PINECONE_ENVIRONMENT", "test-env")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path_factory):
    """Keep the user's real config and credentials out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr("scriptorium.config._GLOBAL_CONFIG_PATH", home / "config.yaml")
    for var in (
        "PINECONE_API_KEY",
        "PINECONE_INDEX_NAME",
        "PINECONE_ENVIRONMENT",
        "SCRIPTORIUM_EMBEDDING_MODEL",
        "SCRIPTORIUM_QUERY_MODEL",
        "SCRIPTORIUM_PRAY_MODEL",
        "OLLAMA_HOST",
    ):
        monkeypatch.delenv(var, raising=False)
