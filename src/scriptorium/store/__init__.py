"""Scriptorium vector store layer."""

from scriptorium.store.base import MAX_BATCH, MAX_TOP_K, BaseVectorStore, batched
from scriptorium.store.ids import canonical_source, record_id, source_prefix
from scriptorium.store.models import Match, RecordMetadata, VectorRecord
from scriptorium.store.pinecone_store import PineconeStore

__all__ = [
    "BaseVectorStore",
    "MAX_BATCH",
    "MAX_TOP_K",
    "Match",
    "PineconeStore",
    "RecordMetadata",
    "VectorRecord",
    "batched",
    "canonical_source",
    "record_id",
    "source_prefix",
]
