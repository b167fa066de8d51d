"""Test fixtures for the media library."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from media_library.catalog.repository import ItemRepository  # noqa: E402
from media_library.db.sqlite import SQLiteDatabase  # noqa: E402
from media_library.ingest.embeddings import EmbeddingProvider, EmbeddingState  # noqa: E402
from media_library.ingest.sync import IndexSynchronizer  # noqa: E402
from media_library.retrieval import MemoryVectorStore, QueryService, VectorIndexClient  # noqa: E402


class KeywordVectorBackend:
    """Embedding backend that returns a fixed vector for any text containing a key."""

    name = "keyword"

    def __init__(self, vectors: dict[str, Sequence[float]], default: Sequence[float] | None = None) -> None:
        self.vectors = {key: list(value) for key, value in vectors.items()}
        self.default = list(default) if default is not None else None
        self.calls: list[str] = []
        self.fail = False

    def encode(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise ConnectionError("embedding provider down")
        for key, vector in self.vectors.items():
            if key in text:
                return list(vector)
        if self.default is None:
            raise ValueError(f"no vector configured for {text!r}")
        return list(self.default)

    def probe(self) -> bool:
        return True


class ScriptedGenerator:
    """Text generator returning queued responses; exceptions in the queue are raised."""

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("MEDLIB_DB_PATH", str(tmp_path / "library.db"))
    monkeypatch.setenv("MEDLIB_SYNC_MODE", "inline")
    monkeypatch.setenv("MEDLIB_VECTOR_BACKEND", "memory")
    monkeypatch.setenv("MEDLIB_EMBEDDING_BACKEND", "hashed")
    monkeypatch.delenv("MEDLIB_CONFIG", raising=False)

    from media_library.api import dependencies as deps

    deps.reset_dependencies()
    yield
    deps.reset_dependencies()


@pytest.fixture
def database(tmp_path: Path) -> SQLiteDatabase:
    db = SQLiteDatabase(tmp_path / "unit.db")
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def repository(database: SQLiteDatabase) -> ItemRepository:
    return ItemRepository(database)


@pytest.fixture
def keyword_backend() -> KeywordVectorBackend:
    return KeywordVectorBackend(
        {
            "Neon Run": [1.0, 0.0, 0.0],
            "hacker": [1.0, 0.0, 0.0],
            "Quiet Garden": [0.0, 1.0, 0.0],
            "gardening": [0.0, 1.0, 0.0],
        },
        default=[0.0, 0.0, 1.0],
    )


@pytest.fixture
def embedder(keyword_backend: KeywordVectorBackend) -> EmbeddingProvider:
    return EmbeddingProvider(keyword_backend, EmbeddingState(default_dim=3))


@pytest.fixture
def vector_index() -> VectorIndexClient:
    return VectorIndexClient(MemoryVectorStore(), "test_items")


@pytest.fixture
def synchronizer(
    repository: ItemRepository,
    embedder: EmbeddingProvider,
    vector_index: VectorIndexClient,
) -> IndexSynchronizer:
    return IndexSynchronizer(repository=repository, embedder=embedder, index=vector_index)


@pytest.fixture
def query_service(
    repository: ItemRepository,
    embedder: EmbeddingProvider,
    vector_index: VectorIndexClient,
) -> QueryService:
    return QueryService(repository=repository, embedder=embedder, index=vector_index)
