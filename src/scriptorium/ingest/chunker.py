"""Fixed character-window chunker with integer overlap.

The window start advances by ``chunk_size - overlap`` after every window and
iteration stops once the start reaches the end of the text. The final windows
are truncated to the remaining text, so a tail shorter than the overlap can
still produce a window that lies inside its predecessor. Segments are not
stripped, so the chunk spans tile the text exactly.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

from scriptorium.errors import ValidationError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200


@dataclass(frozen=True)
class Chunk:
    text: str
    index: int
    start: int = 0

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def validate_window(chunk_size: int, overlap: int) -> None:
    """Raise ValidationError unless ``chunk_size > 0`` and ``0 <= overlap < chunk_size``."""
    if chunk_size < 1:
        raise ValidationError(f"chunk_size must be >= 1, got {chunk_size}")
    if overlap < 0:
        raise ValidationError(f"overlap must be >= 0, got {overlap}")
    if overlap >= chunk_size:
        raise ValidationError(
            f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def count_chunks(length: int, chunk_size: int, overlap: int) -> int:
    """Closed-form number of windows for a text of *length* characters."""
    validate_window(chunk_size, overlap)
    if length <= 0:
        return 0
    return math.ceil(length / (chunk_size - overlap))


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> Iterator[Chunk]:
    """Yield overlapping windows over *text*, indexed from 0."""
    validate_window(chunk_size, overlap)
    step = chunk_size - overlap
    length = len(text)
    start = 0
    index = 0
    while start < length:
        end = min(start + chunk_size, length)
        yield Chunk(text=text[start:end], index=index, start=start)
        start += step
        index += 1


class ChunkSequence:
    """Lazy, restartable view of the chunks of one document.

    Each iteration re-slices the text; ``len()`` is computed without
    iterating. Parameters are validated on construction.
    """

    def __init__(
        self,
        text: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
    ) -> None:
        validate_window(chunk_size, overlap)
        self.text = text
        self.chunk_size = chunk_size
        self.overlap = overlap

    def __iter__(self) -> Iterator[Chunk]:
        return chunk_text(self.text, self.chunk_size, self.overlap)

    def __len__(self) -> int:
        return count_chunks(len(self.text), self.chunk_size, self.overlap)
