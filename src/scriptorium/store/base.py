"""Vector store interface shared by the Pinecone adapter and test doubles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence

from scriptorium.store.models import Match, VectorRecord

# Pinecone rejects upsert/delete requests above this many ids.
MAX_BATCH = 1000
# Largest top_k Pinecone accepts; used to enumerate a source's records.
MAX_TOP_K = 10_000


def batched(items: Sequence, size: int = MAX_BATCH) -> Iterator[Sequence]:
    """Yield consecutive slices of *items* no longer than *size*."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BaseVectorStore(ABC):
    """Abstract vector index keyed by deterministic record ids.

    Subclasses implement the four primitive operations; ``upsert`` and
    ``delete_many`` must accept arbitrarily large inputs and partition them
    into store-sized batches.
    """

    dimensions: int

    @abstractmethod
    def upsert(self, records: Sequence[VectorRecord]) -> int:
        """Insert or overwrite *records* by id. Returns the number written."""

    @abstractmethod
    def query_by_source(self, source: str) -> list[Match]:
        """Return id-only matches for every record whose ``source`` equals *source*."""

    @abstractmethod
    def delete_many(self, ids: Sequence[str]) -> None:
        """Delete *ids*. Unknown ids are ignored."""

    @abstractmethod
    def query_similar(
        self,
        vector: list[float],
        top_k: int,
        include_metadata: bool = True,
    ) -> list[Match]:
        """Return at most *top_k* matches, best-first."""

    def delete_source(self, source: str) -> int:
        """Delete every record for *source*. Returns how many were removed."""
        ids = [m.id for m in self.query_by_source(source)]
        if ids:
            self.delete_many(ids)
        return len(ids)

    def close(self) -> None:
        """Release client resources. Default: nothing to release."""

    def __enter__(self) -> BaseVectorStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
