"""Tests for the vector index client."""

from __future__ import annotations

from typing import Any

import pytest

from media_library.core.errors import VectorIndexError
from media_library.retrieval.vector_index import MemoryVectorStore, VectorIndexClient


class FlakyStore(MemoryVectorStore):
    """Memory store whose first ``failures`` collection opens raise."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.opens = 0

    def get_or_create_collection(self, name: str, metadata: dict[str, Any] | None = None):
        self.opens += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("index unreachable")
        return super().get_or_create_collection(name, metadata)


class BrokenDeleteStore(MemoryVectorStore):
    def delete_collection(self, name: str) -> None:
        raise ConnectionError("permission denied")


def _client() -> VectorIndexClient:
    return VectorIndexClient(MemoryVectorStore(), "items")


def test_upsert_is_idempotent() -> None:
    index = _client()
    index.upsert("a", [1.0, 0.0], {"type": "MOVIE", "degraded": False}, "first")
    index.upsert("a", [0.0, 1.0], {"type": "MOVIE", "degraded": False}, "second")
    assert index.count() == 1
    hits = index.query([0.0, 1.0], top_k=5)
    assert [hit.id for hit in hits] == ["a"]
    assert hits[0].distance == pytest.approx(0.0)


def test_query_orders_by_distance_and_respects_top_k() -> None:
    index = _client()
    index.upsert("near", [1.0, 0.1], {"type": "BOOK", "degraded": False}, "near")
    index.upsert("far", [0.0, 1.0], {"type": "BOOK", "degraded": False}, "far")
    index.upsert("exact", [1.0, 0.0], {"type": "BOOK", "degraded": False}, "exact")
    assert [hit.id for hit in index.query([1.0, 0.0], top_k=10)] == ["exact", "near", "far"]
    assert [hit.id for hit in index.query([1.0, 0.0], top_k=1)] == ["exact"]


def test_delete_then_query_never_returns_id() -> None:
    index = _client()
    index.upsert("a", [1.0, 0.0], {"type": "GAME", "degraded": False}, "a")
    index.delete("a")
    index.delete("a")
    index.delete("never-existed")
    assert index.query([1.0, 0.0], top_k=10) == []


def test_empty_collection_query_returns_nothing() -> None:
    assert _client().query([0.3, 0.4], top_k=10) == []


def test_degraded_entries_are_excluded_from_queries() -> None:
    index = _client()
    index.upsert("zero", [0.0, 0.0], {"type": "MOVIE", "degraded": True}, "zero")
    index.upsert("real", [1.0, 0.0], {"type": "MOVIE", "degraded": False}, "real")
    assert [hit.id for hit in index.query([1.0, 0.0], top_k=10)] == ["real"]


def test_zero_vector_is_maximally_distant() -> None:
    index = _client()
    index.upsert("a", [1.0, 0.0], {"type": "MOVIE", "degraded": False}, "a")
    hits = index.query([0.0, 0.0], top_k=10)
    assert hits[0].distance == pytest.approx(1.0)


def test_wipe_on_missing_collection_leaves_empty_queryable_collection() -> None:
    store = MemoryVectorStore()
    index = VectorIndexClient(store, "fresh")
    index.wipe()
    assert store.list_collections() == ["fresh"]
    assert index.query([1.0], top_k=3) == []


def test_wipe_removes_existing_entries() -> None:
    index = _client()
    index.upsert("a", [1.0, 0.0], {"type": "MOVIE", "degraded": False}, "a")
    index.wipe()
    assert index.count() == 0


def test_wipe_propagates_other_delete_errors() -> None:
    index = VectorIndexClient(BrokenDeleteStore(), "items")
    with pytest.raises(VectorIndexError):
        index.wipe()


def test_collection_open_retries_once() -> None:
    store = FlakyStore(failures=1)
    index = VectorIndexClient(store, "items")
    assert index.count() == 0
    assert store.opens == 2


def test_collection_open_gives_up_after_retry() -> None:
    store = FlakyStore(failures=2)
    index = VectorIndexClient(store, "items")
    with pytest.raises(VectorIndexError):
        index.upsert("a", [1.0], {"type": "MOVIE", "degraded": False}, "a")
    assert store.opens == 2


def test_dimension_mismatch_surfaces_as_index_error() -> None:
    index = _client()
    index.upsert("a", [1.0, 0.0], {"type": "MOVIE", "degraded": False}, "a")
    with pytest.raises(VectorIndexError):
        index.upsert("b", [1.0, 0.0, 0.0], {"type": "MOVIE", "degraded": False}, "b")
