"""Domain models for the vector store layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RecordMetadata:
    text: str
    source: str
    chunk_index: int
    total_chunks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "source": self.source,
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordMetadata:
        return cls(
            text=str(data.get("text", "")),
            source=str(data.get("source", "")),
            chunk_index=int(data.get("chunkIndex", 0)),
            total_chunks=int(data.get("totalChunks", 0)),
        )


@dataclass
class VectorRecord:
    id: str
    values: list[float]
    metadata: RecordMetadata

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "values": self.values, "metadata": self.metadata.to_dict()}


@dataclass
class Match:
    """A single similarity hit; metadata is None when not requested."""

    id: str
    score: float
    metadata: RecordMetadata | None = None
    values: list[float] = field(default_factory=list)
