"""Ingestion pipeline — delete-then-reinsert of one document's vectors.

Per document:
  1. Resolve the path to its canonical absolute form (the ``source`` identity).
  2. Delete every existing vector whose metadata ``source`` matches, so that at
     most one generation of vectors exists for the path.
  3. Count chunks (closed form), then embed and upsert them one at a time.
     If chunk k fails, chunks 0..k-1 remain stored; the error propagates.

Directory mode walks the tree, filters by extension, and isolates failures at
file granularity: a failing file is recorded and the walk continues.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from scriptorium.errors import ScriptoriumError
from scriptorium.ingest.chunker import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_OVERLAP,
    ChunkSequence,
    validate_window,
)
from scriptorium.ingest.embedder import Embedder
from scriptorium.store.base import BaseVectorStore
from scriptorium.store.ids import canonical_source, record_id
from scriptorium.store.models import RecordMetadata, VectorRecord

TEXT_EXTENSIONS: frozenset[str] = frozenset({".txt", ".md", ".markdown", ".text"})

ProgressCallback = Callable[[int, int], None]


@dataclass
class IngestResult:
    """Outcome of ingesting a single document.

    Attributes:
        source: Canonical absolute path used as the record ``source``.
        deleted: Number of previous-generation vectors removed.
        total_chunks: Number of chunks the document produced.
        upserted: Number of chunks embedded and written.
    """

    source: str
    deleted: int = 0
    total_chunks: int = 0
    upserted: int = 0


@dataclass
class BatchReport:
    files: list[Path] = field(default_factory=list)
    succeeded: list[IngestResult] = field(default_factory=list)
    failed: list[tuple[Path, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def ingest_document(
    path: str | Path,
    store: BaseVectorStore,
    embedder: Embedder,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    on_progress: ProgressCallback | None = None,
) -> IngestResult:
    """Replace all vectors for *path* with freshly embedded chunks.

    Args:
        path: Document to ingest (UTF-8 text).
        store: Open vector store.
        embedder: Embedder whose dimension matches the store.
        chunk_size: Window size in characters.
        overlap: Characters shared by consecutive windows.
        on_progress: Called as ``on_progress(chunk_index, total_chunks)``
            after each successful upsert.

    Returns:
        IngestResult with deletion and upsert counts.

    Raises:
        ValidationError: Invalid window parameters (before any remote call).
        ServiceError: Embedding or vector store failure; earlier chunks stay stored.
        OSError: The file cannot be read.
    """
    validate_window(chunk_size, overlap)

    source = canonical_source(path)
    text = Path(source).read_text(encoding="utf-8")

    result = IngestResult(source=source)
    result.deleted = store.delete_source(source)

    chunks = ChunkSequence(text, chunk_size, overlap)
    result.total_chunks = len(chunks)

    for chunk in chunks:
        vector = embedder.embed(chunk.text)
        store.upsert(
            [
                VectorRecord(
                    id=record_id(source, chunk.index),
                    values=vector,
                    metadata=RecordMetadata(
                        text=chunk.text,
                        source=source,
                        chunk_index=chunk.index,
                        total_chunks=result.total_chunks,
                    ),
                )
            ]
        )
        result.upserted += 1
        if on_progress is not None:
            on_progress(chunk.index, result.total_chunks)

    return result


# ------------------------------------------------------------------
# Directory mode
# ------------------------------------------------------------------


def scan_documents(directory: Path) -> list[Path]:
    """Return supported text files under *directory*, recursively, sorted.

    Raises:
        FileNotFoundError: If *directory* does not exist or is not a directory.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Documents directory not found: {directory}")
    return _scan_dir(directory)


def _scan_dir(directory: Path) -> list[Path]:
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        return []
    for entry in entries:
        if entry.is_dir():
            files.extend(_scan_dir(entry))
        elif entry.is_file() and entry.suffix.lower() in TEXT_EXTENSIONS:
            files.append(entry)
    return files


def ingest_directory(
    directory: str | Path,
    store: BaseVectorStore,
    embedder: Embedder,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    on_file: Callable[[int, int, Path], None] | None = None,
    on_progress: ProgressCallback | None = None,
    on_error: Callable[[Path, Exception], None] | None = None,
    on_done: Callable[[IngestResult], None] | None = None,
) -> BatchReport:
    """Ingest every supported file under *directory*, one at a time.

    A file that fails with a service, validation, or I/O error is recorded in
    ``BatchReport.failed`` (and passed to *on_error*); remaining files are
    still processed.
    """
    validate_window(chunk_size, overlap)
    report = BatchReport(files=scan_documents(Path(directory).expanduser().resolve()))

    total = len(report.files)
    for i, file in enumerate(report.files, start=1):
        if on_file is not None:
            on_file(i, total, file)
        try:
            result = ingest_document(
                file,
                store,
                embedder,
                chunk_size=chunk_size,
                overlap=overlap,
                on_progress=on_progress,
            )
        except (ScriptoriumError, OSError, ValueError) as exc:
            report.failed.append((file, exc))
            if on_error is not None:
                on_error(file, exc)
            continue
        report.succeeded.append(result)
        if on_done is not None:
            on_done(result)

    return report
