"""Tests for the Pinecone adapter (SDK index mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from scriptorium.config import VectorStoreCfg
from scriptorium.errors import VectorStoreError
from scriptorium.store.base import MAX_TOP_K
from scriptorium.store.models import RecordMetadata, VectorRecord
from scriptorium.store.pinecone_store import PineconeStore


def _record(i: int, dims: int = 3, source: str = "/docs/a.txt") -> VectorRecord:
    return VectorRecord(
        id=f"_docs_a_txt_chunk_{i}",
        values=[0.1] * dims,
        metadata=RecordMetadata(text=f"text {i}", source=source, chunk_index=i, total_chunks=5),
    )


def _scored(id_: str, score: float, source: str = "/docs/a.txt"):
    return SimpleNamespace(
        id=id_,
        score=score,
        values=[],
        metadata={"text": f"t-{id_}", "source": source, "chunkIndex": 0, "totalChunks": 1},
    )


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def test_from_config_opens_index():
    cfg = VectorStoreCfg(api_key="pk", index_name="corpus", environment="us-east-1")
    with patch("scriptorium.store.pinecone_store.Pinecone") as mock_pc:
        store = PineconeStore.from_config(cfg, dimensions=768)

    mock_pc.assert_called_once_with(api_key="pk")
    mock_pc.return_value.Index.assert_called_once_with("corpus")
    assert store.dimensions == 768


def test_from_config_wraps_client_errors():
    cfg = VectorStoreCfg(api_key="pk", index_name="corpus", environment="env")
    with patch("scriptorium.store.pinecone_store.Pinecone", side_effect=RuntimeError("bad key")):
        with pytest.raises(VectorStoreError, match="corpus"):
            PineconeStore.from_config(cfg, dimensions=768)


def test_invalid_dimensions():
    with pytest.raises(ValueError):
        PineconeStore(MagicMock(), dimensions=0)


# ------------------------------------------------------------------
# upsert
# ------------------------------------------------------------------


def test_upsert_sends_metadata_in_wire_format():
    index = MagicMock()
    PineconeStore(index, dimensions=3).upsert([_record(0)])

    vectors = index.upsert.call_args.kwargs["vectors"]
    assert vectors == [
        {
            "id": "_docs_a_txt_chunk_0",
            "values": [0.1, 0.1, 0.1],
            "metadata": {"text": "text 0", "source": "/docs/a.txt", "chunkIndex": 0, "totalChunks": 5},
        }
    ]


def test_upsert_partitions_batches():
    index = MagicMock()
    store = PineconeStore(index, dimensions=3, batch_size=2)

    written = store.upsert([_record(i) for i in range(5)])

    assert written == 5
    assert [len(c.kwargs["vectors"]) for c in index.upsert.call_args_list] == [2, 2, 1]


def test_upsert_rejects_wrong_dimension_before_sending():
    index = MagicMock()
    with pytest.raises(VectorStoreError, match="dimensions"):
        PineconeStore(index, dimensions=4).upsert([_record(0, dims=3)])
    index.upsert.assert_not_called()


def test_upsert_wraps_sdk_errors():
    index = MagicMock()
    index.upsert.side_effect = ConnectionError("reset")
    with pytest.raises(VectorStoreError, match="reset"):
        PineconeStore(index, dimensions=3).upsert([_record(0)])


# ------------------------------------------------------------------
# delete_many
# ------------------------------------------------------------------


def test_delete_many_partitions_batches():
    index = MagicMock()
    PineconeStore(index, dimensions=3, batch_size=1000).delete_many([f"id{i}" for i in range(2500)])
    assert [len(c.kwargs["ids"]) for c in index.delete.call_args_list] == [1000, 1000, 500]


def test_delete_many_empty_is_noop():
    index = MagicMock()
    PineconeStore(index, dimensions=3).delete_many([])
    index.delete.assert_not_called()


# ------------------------------------------------------------------
# query_by_source / query_similar
# ------------------------------------------------------------------


def test_query_by_source_uses_zero_vector_and_filter():
    index = MagicMock()
    index.query.return_value = SimpleNamespace(
        matches=[SimpleNamespace(id="a", score=0.0), SimpleNamespace(id="b", score=0.0)]
    )

    matches = PineconeStore(index, dimensions=4).query_by_source("/docs/a.txt")

    kwargs = index.query.call_args.kwargs
    assert kwargs["vector"] == [0.0, 0.0, 0.0, 0.0]
    assert kwargs["filter"] == {"source": {"$eq": "/docs/a.txt"}}
    assert kwargs["top_k"] == MAX_TOP_K
    assert [m.id for m in matches] == ["a", "b"]
    assert matches[0].metadata is None


def test_query_by_source_requests_ids_only():
    # Metadata or values would cap top_k at 1000 on the server.
    index = MagicMock()
    index.query.return_value = SimpleNamespace(matches=[])

    PineconeStore(index, dimensions=2).query_by_source("/docs/a.txt")

    kwargs = index.query.call_args.kwargs
    assert kwargs["include_metadata"] is False
    assert kwargs["include_values"] is False
    assert kwargs["top_k"] > 1000


def test_query_similar_orders_by_score_and_caps():
    index = MagicMock()
    index.query.return_value = SimpleNamespace(
        matches=[_scored("low", 0.2), _scored("high", 0.9), _scored("mid", 0.5)]
    )

    matches = PineconeStore(index, dimensions=2).query_similar([1.0, 0.0], top_k=2)

    assert [m.id for m in matches] == ["high", "mid"]
    assert index.query.call_args.kwargs["include_metadata"] is True


def test_query_similar_without_metadata():
    index = MagicMock()
    index.query.return_value = SimpleNamespace(
        matches=[SimpleNamespace(id="x", score=0.3, values=[], metadata=None)]
    )
    matches = PineconeStore(index, dimensions=2).query_similar([1.0, 0.0], top_k=1, include_metadata=False)
    assert matches[0].metadata is None


def test_query_empty_response():
    index = MagicMock()
    index.query.return_value = SimpleNamespace(matches=[])
    assert PineconeStore(index, dimensions=2).query_similar([0.5, 0.5], top_k=5) == []


def test_query_wraps_sdk_errors():
    index = MagicMock()
    index.query.side_effect = TimeoutError("slow")
    with pytest.raises(VectorStoreError, match="slow"):
        PineconeStore(index, dimensions=2).query_by_source("/x")


def test_delete_source_enumerates_then_deletes():
    index = MagicMock()
    index.query.return_value = SimpleNamespace(matches=[_scored("a", 0.0), _scored("b", 0.0)])
    store = PineconeStore(index, dimensions=2)

    assert store.delete_source("/docs/a.txt") == 2
    index.delete.assert_called_once_with(ids=["a", "b"])


def test_context_manager_closes_index():
    index = MagicMock()
    with PineconeStore(index, dimensions=2):
        pass
    index.close.assert_called_once()
