"""Tests for the retrieval engine."""

from __future__ import annotations

import pytest

from media_library.catalog.repository import ItemRepository
from media_library.core.errors import SearchUnavailableError
from media_library.ingest.embeddings import EmbeddingProvider
from media_library.ingest.sync import IndexSynchronizer
from media_library.models.entities import CatalogRecord, MediaType, RankedHit
from media_library.retrieval.search import QueryService, rehydrate, select_relevant
from media_library.retrieval.vector_index import MemoryVectorStore, VectorIndexClient


def _hits(*pairs: tuple[str, float]) -> list[RankedHit]:
    return [RankedHit(id=item_id, distance=distance) for item_id, distance in pairs]


def test_select_relevant_filters_before_capping() -> None:
    hits = _hits(("a", 0.1), ("b", 0.9), ("c", 0.3), ("d", 0.5), ("e", 0.6))
    assert [hit.id for hit in select_relevant(hits, threshold=0.7, limit=3)] == ["a", "c", "d"]
    assert [hit.id for hit in select_relevant(hits, threshold=0.2, limit=3)] == ["a"]


def test_threshold_is_monotonic() -> None:
    hits = _hits(("a", 0.05), ("b", 0.4), ("c", 0.65), ("d", 0.7), ("e", 0.71))
    previous: set[str] = set()
    for threshold in (0.0, 0.1, 0.5, 0.7, 1.0):
        current = {hit.id for hit in select_relevant(hits, threshold=threshold, limit=10)}
        assert previous <= current
        previous = current
    assert "d" in previous


def test_rehydrate_keeps_rank_order_and_drops_missing() -> None:
    records = [
        CatalogRecord(id=item_id, title=item_id, type=MediaType.BOOK, synopsis="s")
        for item_id in ("c", "a")
    ]
    matches = rehydrate(_hits(("a", 0.1), ("gone", 0.2), ("c", 0.3)), records)
    assert [match.record.id for match in matches] == ["a", "c"]
    assert [match.distance for match in matches] == [0.1, 0.3]


def test_neon_run_is_found_first(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
) -> None:
    neon = repository.create(
        item_id="a",
        title="Neon Run",
        type=MediaType.MOVIE,
        synopsis="A hacker flees a megacorp",
        keywords=["cyberpunk", "chase"],
    )
    garden = repository.create(title="Quiet Garden", type=MediaType.BOOK, synopsis="A year of gardening")
    synchronizer.record_saved(neon)
    synchronizer.record_saved(garden)

    matches = query_service.search("hacker escaping a corporation")
    assert [match.record.id for match in matches] == ["a"]
    assert matches[0].distance == pytest.approx(0.0)


def test_irrelevant_query_returns_empty(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
) -> None:
    synchronizer.record_saved(repository.create(title="Neon Run", type=MediaType.MOVIE, synopsis="Chase"))
    assert query_service.search("something unrelated") == []


def test_max_results_caps_relevant_hits(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
) -> None:
    for position in range(5):
        record = repository.create(title=f"Neon Run {position}", type=MediaType.MOVIE, synopsis="Chase")
        synchronizer.record_saved(record)
    assert len(query_service.search("hacker")) == 3
    assert len(query_service.search("hacker", max_results=5)) == 5


def test_degraded_query_embedding_still_queries_index(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
    keyword_backend,
) -> None:
    neon = repository.create(title="Neon Run", type=MediaType.MOVIE, synopsis="Chase")
    synchronizer.record_saved(neon)
    keyword_backend.fail = True
    assert query_service.search("hacker") == []
    match = query_service.nearest("hacker")
    assert match is not None
    assert match.record.id == neon.id
    assert match.distance == pytest.approx(1.0)


def test_embedding_and_index_outage_raises_search_unavailable(
    repository: ItemRepository,
    embedder: EmbeddingProvider,
    keyword_backend,
) -> None:
    class DownStore(MemoryVectorStore):
        def get_or_create_collection(self, name, metadata=None):
            raise ConnectionError("index offline")

    keyword_backend.fail = True
    service = QueryService(repository, embedder, VectorIndexClient(DownStore(), "items"))
    with pytest.raises(SearchUnavailableError):
        service.search("hacker")


def test_zero_max_results_returns_nothing(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
) -> None:
    synchronizer.record_saved(repository.create(title="Neon Run", type=MediaType.MOVIE, synopsis="Chase"))
    assert query_service.search("hacker", max_results=0) == []


def test_index_outage_raises_search_unavailable(repository: ItemRepository, embedder: EmbeddingProvider) -> None:
    class DownStore(MemoryVectorStore):
        def get_or_create_collection(self, name, metadata=None):
            raise ConnectionError("index offline")

    service = QueryService(repository, embedder, VectorIndexClient(DownStore(), "items"))
    with pytest.raises(SearchUnavailableError, match="Search failed. Please try again."):
        service.search("hacker")


def test_nearest_ignores_threshold(
    synchronizer: IndexSynchronizer,
    repository: ItemRepository,
    query_service: QueryService,
) -> None:
    garden = repository.create(title="Quiet Garden", type=MediaType.BOOK, synopsis="Seasons")
    synchronizer.record_saved(garden)
    match = query_service.nearest("hacker")
    assert match is not None
    assert match.record.id == garden.id
    assert match.distance > query_service.relevance_threshold
