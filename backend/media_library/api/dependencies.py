"""Shared FastAPI dependencies.

Each collaborator is built once per process and handed to its dependents by
reference; :func:`reset_dependencies` drops them all.
"""

from __future__ import annotations

from functools import lru_cache

from media_library.catalog.repository import ItemRepository
from media_library.core.config import Settings, get_settings
from media_library.db.sqlite import SQLiteDatabase
from media_library.ingest.embeddings import EmbeddingProvider, EmbeddingState, build_backend
from media_library.ingest.sync import IndexSynchronizer, IndexSyncQueue
from media_library.llm.assistants import LibraryAssistant
from media_library.llm.generation import OllamaGenerationClient, TextGenerator
from media_library.retrieval import ExplanationEnricher, MemoryVectorStore, QueryService, VectorIndexClient
from media_library.retrieval.vector_index import VectorStore

_DB: SQLiteDatabase | None = None
_EMBEDDER: EmbeddingProvider | None = None
_VECTOR_INDEX: VectorIndexClient | None = None
_SYNCHRONIZER: IndexSynchronizer | None = None
_SYNC_QUEUE: IndexSyncQueue | None = None
_QUERY_SERVICE: QueryService | None = None
_GENERATOR: TextGenerator | None = None
_ASSISTANT: LibraryAssistant | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_repository() -> ItemRepository:
    return ItemRepository(get_database())


def get_embedding_provider() -> EmbeddingProvider:
    global _EMBEDDER
    if _EMBEDDER is None:
        settings = get_app_settings()
        backend = build_backend(
            settings.embedding_backend,
            settings.ollama_url,
            settings.embedding_model,
            timeout=settings.embedding_timeout,
            probe_timeout=settings.probe_timeout,
        )
        _EMBEDDER = EmbeddingProvider(backend, EmbeddingState(default_dim=settings.default_embedding_dim))
    return _EMBEDDER


def get_vector_index() -> VectorIndexClient:
    global _VECTOR_INDEX
    if _VECTOR_INDEX is None:
        settings = get_app_settings()
        _VECTOR_INDEX = VectorIndexClient(_build_vector_store(settings), settings.collection_name)
    return _VECTOR_INDEX


def get_synchronizer() -> IndexSynchronizer:
    global _SYNCHRONIZER
    if _SYNCHRONIZER is None:
        _SYNCHRONIZER = IndexSynchronizer(
            repository=get_repository(),
            embedder=get_embedding_provider(),
            index=get_vector_index(),
        )
    return _SYNCHRONIZER


def get_sync_dispatcher() -> IndexSynchronizer | IndexSyncQueue:
    """Where single-item sync goes: the worker queue, or inline when configured."""
    global _SYNC_QUEUE
    settings = get_app_settings()
    if settings.sync_mode == "inline":
        return get_synchronizer()
    if _SYNC_QUEUE is None:
        _SYNC_QUEUE = IndexSyncQueue(get_synchronizer(), maxsize=settings.sync_queue_size)
    return _SYNC_QUEUE


def get_query_service() -> QueryService:
    global _QUERY_SERVICE
    if _QUERY_SERVICE is None:
        settings = get_app_settings()
        _QUERY_SERVICE = QueryService(
            repository=get_repository(),
            embedder=get_embedding_provider(),
            index=get_vector_index(),
            relevance_threshold=settings.relevance_threshold,
            overfetch=settings.overfetch,
            max_results=settings.max_results,
        )
    return _QUERY_SERVICE


def get_generator() -> TextGenerator:
    global _GENERATOR
    if _GENERATOR is None:
        settings = get_app_settings()
        _GENERATOR = OllamaGenerationClient(
            settings.ollama_url,
            settings.generation_model,
            timeout=settings.generation_timeout,
        )
    return _GENERATOR


def get_explanation_enricher() -> ExplanationEnricher:
    return ExplanationEnricher(get_generator())


def get_assistant() -> LibraryAssistant:
    global _ASSISTANT
    if _ASSISTANT is None:
        _ASSISTANT = LibraryAssistant(
            generator=get_generator(),
            repository=get_repository(),
            query_service=get_query_service(),
        )
    return _ASSISTANT


def reset_dependencies() -> None:
    global _DB, _EMBEDDER, _VECTOR_INDEX, _SYNCHRONIZER, _SYNC_QUEUE, _QUERY_SERVICE, _GENERATOR, _ASSISTANT
    if _SYNC_QUEUE is not None:
        _SYNC_QUEUE.stop()
    if _DB is not None:
        _DB.close()
    get_app_settings.cache_clear()
    get_settings.cache_clear()
    _DB = None
    _EMBEDDER = None
    _VECTOR_INDEX = None
    _SYNCHRONIZER = None
    _SYNC_QUEUE = None
    _QUERY_SERVICE = None
    _GENERATOR = None
    _ASSISTANT = None


def _build_vector_store(settings: Settings) -> VectorStore:
    if settings.vector_backend == "chroma":
        from media_library.retrieval.chroma_store import connect_chroma

        return connect_chroma(settings.chroma_url)
    return MemoryVectorStore()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_repository",
    "get_embedding_provider",
    "get_vector_index",
    "get_synchronizer",
    "get_sync_dispatcher",
    "get_query_service",
    "get_generator",
    "get_explanation_enricher",
    "get_assistant",
    "reset_dependencies",
]
