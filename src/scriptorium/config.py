"""Scriptorium configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (.env in CWD is loaded first, never overriding
     variables already set in the process environment)
  3. Per-project scriptorium.yaml  (in the working directory)
  4. Global ~/.scriptorium/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Pinecone credentials come from the environment only. Commands that touch the
vector index call require_vector_store() at startup; a missing variable is fatal.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".scriptorium"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "scriptorium.yaml"
_DOTENV_NAME: str = ".env"

# Fields that suggest an API key; forbidden in any config file.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["models", "embedding", "chunking", "retrieval", "pray", "vector_store"]
)

_PINECONE_ENV: dict[str, str] = {
    "api_key": "PINECONE_API_KEY",
    "index_name": "PINECONE_INDEX_NAME",
    "environment": "PINECONE_ENVIRONMENT",
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when configuration is missing, invalid, or forbidden."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ModelsCfg:
    """Model endpoint configuration (scriptorium.yaml: models:)."""

    api_base: str = "http://localhost:11434"
    num_retries: int = 2
    timeout: float = 120.0


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (scriptorium.yaml: embedding:)."""

    model: str = "ollama/nomic-embed-text"
    dimensions: int = 768


@dataclass
class ChunkingCfg:
    """Character window used by ingest (scriptorium.yaml: chunking:)."""

    chunk_size: int = 1000
    overlap: int = 200


@dataclass
class RetrievalCfg:
    """Similarity query configuration (scriptorium.yaml: retrieval:)."""

    top_k: int = 5
    model: str = "ollama/llama3.2:3b"


@dataclass
class PrayCfg:
    """Tool-calling prayer composer configuration (scriptorium.yaml: pray:)."""

    model: str = "ollama_chat/qwen2.5:7b"
    docs_dir: str = "docs"
    max_iterations: int = 10


@dataclass
class VectorStoreCfg:
    """Pinecone connection settings — populated from the environment only.

    Attributes:
        api_key: PINECONE_API_KEY.
        index_name: PINECONE_INDEX_NAME.
        environment: PINECONE_ENVIRONMENT. Required for parity with pod-based
            deployments; the serverless client resolves the host from the index.
    """

    api_key: str | None = None
    index_name: str | None = None
    environment: str | None = None


@dataclass
class ScriptoriumConfig:
    """Root configuration object, built by load_config() from merged layers."""

    models: ModelsCfg = field(default_factory=ModelsCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    pray: PrayCfg = field(default_factory=PrayCfg)
    vector_store: VectorStoreCfg = field(default_factory=VectorStoreCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config '{path}' must contain a mapping at the top level.")
    return raw


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ScriptoriumConfig:
    """Build a *ScriptoriumConfig* from a merged raw YAML dict."""
    cfg = ScriptoriumConfig()

    if "models" in data:
        m = data["models"]
        cfg.models = ModelsCfg(
            api_base=str(m.get("api_base", cfg.models.api_base)),
            num_retries=int(m.get("num_retries", cfg.models.num_retries)),
            timeout=float(m.get("timeout", cfg.models.timeout)),
        )

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )

    if "chunking" in data:
        c = data["chunking"]
        cfg.chunking = ChunkingCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            model=str(r.get("model", cfg.retrieval.model)),
        )

    if "pray" in data:
        p = data["pray"]
        cfg.pray = PrayCfg(
            model=str(p.get("model", cfg.pray.model)),
            docs_dir=str(p.get("docs_dir", cfg.pray.docs_dir)),
            max_iterations=int(p.get("max_iterations", cfg.pray.max_iterations)),
        )

    return cfg


def _apply_env_overrides(cfg: ScriptoriumConfig) -> ScriptoriumConfig:
    """Apply environment variable overrides (layer 2)."""
    if model := os.environ.get("SCRIPTORIUM_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("SCRIPTORIUM_QUERY_MODEL"):
        cfg.retrieval.model = model
    if model := os.environ.get("SCRIPTORIUM_PRAY_MODEL"):
        cfg.pray.model = model
    if host := os.environ.get("OLLAMA_HOST"):
        cfg.models.api_base = host if "://" in host else f"http://{host}"

    cfg.vector_store = VectorStoreCfg(
        api_key=os.environ.get(_PINECONE_ENV["api_key"]) or None,
        index_name=os.environ.get(_PINECONE_ENV["index_name"]) or None,
        environment=os.environ.get(_PINECONE_ENV["environment"]) or None,
    )
    return cfg


def _validate(cfg: ScriptoriumConfig) -> None:
    if cfg.chunking.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1, got {cfg.chunking.chunk_size}")
    if not 0 <= cfg.chunking.overlap < cfg.chunking.chunk_size:
        raise ConfigError(
            f"chunking.overlap must be in [0, chunk_size), got {cfg.chunking.overlap}"
        )
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    if cfg.pray.max_iterations < 1:
        raise ConfigError(
            f"pray.max_iterations must be >= 1, got {cfg.pray.max_iterations}"
        )
    if cfg.embedding.dimensions < 1:
        raise ConfigError(
            f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
    load_env_file: bool = True,
) -> ScriptoriumConfig:
    """Load and return a merged *ScriptoriumConfig*.

    Applies layers in order: global → per-project → .env / env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory holding *scriptorium.yaml* and *.env*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).
        load_env_file: Read *project_dir/.env* into the environment first.

    Returns:
        Fully merged *ScriptoriumConfig* with env var overrides applied.

    Raises:
        ConfigError: If a config file contains API-key-like fields or an
            invalid value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    if load_env_file:
        dotenv_path = search_dir / _DOTENV_NAME
        if dotenv_path.exists():
            load_dotenv(dotenv_path, override=False)

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def require_vector_store(cfg: ScriptoriumConfig) -> VectorStoreCfg:
    """Return the Pinecone settings, or raise if any are missing.

    Raises:
        ConfigError: Naming every missing environment variable.
    """
    vs = cfg.vector_store
    missing = [env for attr, env in _PINECONE_ENV.items() if not getattr(vs, attr)]
    if missing:
        raise ConfigError(
            "Missing required environment variable(s): " + ", ".join(missing)
        )
    return vs
