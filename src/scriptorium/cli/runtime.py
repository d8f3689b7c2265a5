"""Construction of the per-invocation client handles used by CLI commands.

Commands call these at startup and close the handles when they finish;
tests patch them at the command module to inject doubles.
"""

from __future__ import annotations

from scriptorium.config import ScriptoriumConfig, load_config, require_vector_store
from scriptorium.ingest.embedder import Embedder
from scriptorium.rag.llm_client import LLMClient
from scriptorium.store.base import BaseVectorStore
from scriptorium.store.pinecone_store import PineconeStore


def get_config() -> ScriptoriumConfig:
    """Load merged config from the working directory (raises ConfigError)."""
    return load_config()


def open_store(cfg: ScriptoriumConfig) -> BaseVectorStore:
    """Open the Pinecone index. Raises ConfigError if credentials are missing."""
    vs = require_vector_store(cfg)
    return PineconeStore.from_config(vs, dimensions=cfg.embedding.dimensions)


def open_llm(cfg: ScriptoriumConfig) -> LLMClient:
    return LLMClient(
        api_base=cfg.models.api_base,
        num_retries=cfg.models.num_retries,
        timeout=cfg.models.timeout,
    )


def make_embedder(client: LLMClient, cfg: ScriptoriumConfig) -> Embedder:
    return Embedder(client, cfg.embedding.model, cfg.embedding.dimensions)
