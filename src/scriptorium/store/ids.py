"""Deterministic record ids derived from the canonical source path."""

from __future__ import annotations

import re
from pathlib import Path


def canonical_source(path: str | Path) -> str:
    """Resolve *path* to the absolute canonical string used as ``source``.

    Examples:
        "docs/../docs/a.txt" -> "/home/me/project/docs/a.txt"
    """
    return str(Path(path).expanduser().resolve())


def source_prefix(source: str) -> str:
    """Replace every non-alphanumeric character of *source* with ``_``.

    Examples:
        "/srv/docs/a.txt" -> "_srv_docs_a_txt"
    """
    return re.sub(r"[^a-zA-Z0-9]", "_", source)


def record_id(source: str, chunk_index: int) -> str:
    """Return the idempotency key ``{prefix}_chunk_{chunk_index}``."""
    if chunk_index < 0:
        raise ValueError(f"chunk_index must be >= 0, got {chunk_index}")
    return f"{source_prefix(source)}_chunk_{chunk_index}"
