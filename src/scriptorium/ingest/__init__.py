"""Scriptorium ingest pipeline — chunker, embedder, delete-then-reinsert writer."""

from scriptorium.ingest.chunker import Chunk, ChunkSequence, chunk_text, count_chunks
from scriptorium.ingest.embedder import Embedder
from scriptorium.ingest.pipeline import (
    TEXT_EXTENSIONS,
    BatchReport,
    IngestResult,
    ingest_directory,
    ingest_document,
    scan_documents,
)

__all__ = [
    "BatchReport",
    "Chunk",
    "ChunkSequence",
    "Embedder",
    "IngestResult",
    "TEXT_EXTENSIONS",
    "chunk_text",
    "count_chunks",
    "ingest_directory",
    "ingest_document",
    "scan_documents",
]
