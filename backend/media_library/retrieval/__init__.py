"""Retrieval orchestration components."""

from .vector_index import MemoryVectorStore, VectorIndexClient
from .search import QueryService, SearchMatch
from .explain import ExplanationEnricher

__all__ = [
    "MemoryVectorStore",
    "VectorIndexClient",
    "QueryService",
    "SearchMatch",
    "ExplanationEnricher",
]
