"""Embedder — one remote embedding call per text, no caching."""

from __future__ import annotations

from scriptorium.errors import EmbeddingServiceError
from scriptorium.rag.llm_client import LLMClient


class Embedder:
    """Turn text into a fixed-length vector via the configured model.

    Args:
        client: Open LLMClient handle.
        model:  LiteLLM embedding model string (provider/model format).
        dimensions: Expected vector length; any other length is an error so
            that every vector written to the index has the same dimension.
    """

    def __init__(self, client: LLMClient, model: str, dimensions: int) -> None:
        self._client = client
        self.model = model
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        vector = self._client.embed(self.model, text)
        if len(vector) != self.dimensions:
            raise EmbeddingServiceError(
                f"Model '{self.model}' returned {len(vector)} dimensions; "
                f"expected {self.dimensions}"
            )
        return vector
