"""Prometheus metrics for requests, search, embedding and index sync."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "medlib_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "medlib_search_latency_seconds",
    "Latency of embedding, index query and record rehydration for a search",
    registry=REGISTRY,
)

EMBEDDING_FAILURES = Counter(
    "medlib_embedding_failures_total",
    "Embedding calls that degraded to a zero vector",
    registry=REGISTRY,
)

INDEX_SYNC = Counter(
    "medlib_index_sync_total",
    "Index synchronization attempts",
    labelnames=("operation", "status"),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "medlib_index_entries",
    "Number of entries stored in the vector index",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "SEARCH_LATENCY",
    "EMBEDDING_FAILURES",
    "INDEX_SYNC",
    "INDEX_SIZE",
    "metrics_response",
]
