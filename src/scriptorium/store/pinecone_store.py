"""Pinecone-backed vector store adapter.

Every call into the Pinecone SDK is wrapped so that transport, auth and
server errors surface as VectorStoreError. Record ids are deterministic
(see scriptorium.store.ids), which makes upsert the replace primitive.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pinecone import Pinecone

from scriptorium.config import VectorStoreCfg
from scriptorium.errors import VectorStoreError
from scriptorium.store.base import MAX_BATCH, MAX_TOP_K, BaseVectorStore, batched
from scriptorium.store.models import Match, RecordMetadata, VectorRecord


class PineconeStore(BaseVectorStore):
    """Adapter over a single Pinecone index.

    Args:
        index: A Pinecone ``Index`` handle (or compatible object).
        dimensions: Embedding dimension of the index; used for the zero
            vector in metadata-only scans.
        batch_size: Maximum ids per upsert/delete request.
    """

    def __init__(self, index: Any, dimensions: int, batch_size: int = MAX_BATCH) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self._index = index
        self.dimensions = dimensions
        self.batch_size = batch_size

    @classmethod
    def from_config(cls, cfg: VectorStoreCfg, dimensions: int) -> PineconeStore:
        """Construct the Pinecone client and open the configured index."""
        try:
            client = Pinecone(api_key=cfg.api_key)
            index = client.Index(cfg.index_name)
        except Exception as exc:
            raise VectorStoreError(
                f"Could not open Pinecone index '{cfg.index_name}': {exc}"
            ) from exc
        return cls(index, dimensions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        written = 0
        for batch in batched(records, self.batch_size):
            for rec in batch:
                self._check_dimensions(rec.values)
            try:
                self._index.upsert(vectors=[rec.to_dict() for rec in batch])
            except Exception as exc:
                raise VectorStoreError(f"Upsert of {len(batch)} record(s) failed: {exc}") from exc
            written += len(batch)
        return written

    def delete_many(self, ids: Sequence[str]) -> None:
        for batch in batched(list(ids), self.batch_size):
            try:
                self._index.delete(ids=list(batch))
            except Exception as exc:
                raise VectorStoreError(f"Delete of {len(batch)} id(s) failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_by_source(self, source: str) -> list[Match]:
        # Zero vector + exact-match filter turns similarity search into a scan.
        # Pinecone caps top_k at 1000 when metadata or values are returned.
        return self._query(
            vector=[0.0] * self.dimensions,
            top_k=MAX_TOP_K,
            include_metadata=False,
            include_values=False,
            filter={"source": {"$eq": source}},
        )

    def query_similar(
        self,
        vector: list[float],
        top_k: int,
        include_metadata: bool = True,
    ) -> list[Match]:
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")
        self._check_dimensions(vector)
        matches = self._query(vector=vector, top_k=top_k, include_metadata=include_metadata)
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    def close(self) -> None:
        close = getattr(self._index, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _query(self, **kwargs: Any) -> list[Match]:
        try:
            response = self._index.query(**kwargs)
        except Exception as exc:
            raise VectorStoreError(f"Query failed: {exc}") from exc
        return [_to_match(m) for m in (getattr(response, "matches", None) or [])]

    def _check_dimensions(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise VectorStoreError(
                f"Vector has {len(vector)} dimensions; index expects {self.dimensions}"
            )


def _to_match(raw: Any) -> Match:
    """Convert a Pinecone ScoredVector into a Match."""
    metadata = getattr(raw, "metadata", None)
    return Match(
        id=str(raw.id),
        score=float(getattr(raw, "score", 0.0) or 0.0),
        metadata=RecordMetadata.from_dict(metadata) if metadata else None,
        values=list(getattr(raw, "values", None) or []),
    )
