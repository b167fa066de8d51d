"""Search orchestration."""

from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass
from typing import Sequence

from media_library.catalog.repository import ItemRepository
from media_library.core.errors import SearchUnavailableError, VectorIndexError
from media_library.core.logging import get_logger
from media_library.core.metrics import SEARCH_LATENCY
from media_library.ingest.embeddings import EmbeddingProvider
from media_library.models.entities import CatalogRecord, RankedHit
from media_library.retrieval.vector_index import VectorIndexClient

logger = get_logger(__name__)

RELEVANCE_THRESHOLD = 0.7
OVERFETCH = 10
MAX_RESULTS = 3


@dataclass(slots=True)
class SearchMatch:
    record: CatalogRecord
    distance: float


def select_relevant(hits: Sequence[RankedHit], threshold: float, limit: int) -> list[RankedHit]:
    """Drop hits farther than ``threshold``, then keep the first ``limit``.

    Filtering runs before the cap so the cap only ever trims relevant hits.
    """
    ordered = sorted(hits, key=lambda hit: hit.distance)
    relevant = [hit for hit in ordered if hit.distance <= threshold]
    return relevant[:limit]


def rehydrate(hits: Sequence[RankedHit], records: Sequence[CatalogRecord]) -> list[SearchMatch]:
    """Put fetched records back into rank order, skipping ids no longer stored."""
    by_id = {record.id: record for record in records}
    matches: list[SearchMatch] = []
    for hit in hits:
        record = by_id.get(hit.id)
        if record is None:
            logger.warning("Index returned %s but the record store has no such item", hit.id)
            continue
        matches.append(SearchMatch(record=record, distance=hit.distance))
    return matches


class QueryService:
    """Embed a query, search the index, and rehydrate the relevant records."""

    def __init__(
        self,
        repository: ItemRepository,
        embedder: EmbeddingProvider,
        index: VectorIndexClient,
        relevance_threshold: float = RELEVANCE_THRESHOLD,
        overfetch: int = OVERFETCH,
        max_results: int = MAX_RESULTS,
    ) -> None:
        self.repository = repository
        self.embedder = embedder
        self.index = index
        self.relevance_threshold = relevance_threshold
        self.overfetch = overfetch
        self.max_results = max_results

    def search(
        self,
        query_text: str,
        max_results: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchMatch]:
        start_time = time.perf_counter()
        limit = self.max_results if max_results is None else max_results
        cutoff = self.relevance_threshold if threshold is None else threshold
        embedding = self.embedder.embed_detailed(query_text)
        if embedding.degraded:
            logger.warning("Query embedding unavailable; searching with a zero vector")
        hits = self._query_index(embedding.vector, self.overfetch)
        relevant = select_relevant(hits, cutoff, limit)
        logger.info(
            "Filtering: %s results -> %s relevant items (threshold: %s, max: %s)",
            len(hits),
            len(relevant),
            cutoff,
            limit,
        )
        if not relevant:
            SEARCH_LATENCY.observe(time.perf_counter() - start_time)
            return []
        records = self._fetch([hit.id for hit in relevant])
        matches = rehydrate(relevant, records)
        SEARCH_LATENCY.observe(time.perf_counter() - start_time)
        return matches

    def nearest(self, query_text: str) -> SearchMatch | None:
        """Closest stored record regardless of threshold."""
        embedding = self.embedder.embed_detailed(query_text)
        for hit in self._query_index(embedding.vector, self.overfetch):
            matches = rehydrate([hit], self._fetch([hit.id]))
            if matches:
                return matches[0]
        return None

    def _query_index(self, vector: Sequence[float], top_k: int) -> list[RankedHit]:
        try:
            return self.index.query(vector, top_k)
        except VectorIndexError as exc:
            logger.error("Vector index query failed: %s", exc)
            raise SearchUnavailableError("Search failed. Please try again.") from exc

    def _fetch(self, item_ids: Sequence[str]) -> list[CatalogRecord]:
        try:
            return self.repository.get_many(item_ids)
        except sqlite3.Error as exc:
            logger.error("Record store fetch failed: %s", exc)
            raise SearchUnavailableError("Search failed. Please try again.") from exc


__all__ = [
    "RELEVANCE_THRESHOLD",
    "OVERFETCH",
    "MAX_RESULTS",
    "SearchMatch",
    "select_relevant",
    "rehydrate",
    "QueryService",
]
