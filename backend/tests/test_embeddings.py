"""Tests for the embedding provider adapter."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from media_library.ingest.embeddings import (
    EmbeddingProvider,
    EmbeddingState,
    HashedEmbeddingBackend,
    OllamaEmbeddingBackend,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, *posts: FakeResponse | Exception, tags: FakeResponse | Exception | None = None) -> None:
        self.posts = list(posts)
        self.tags = tags if tags is not None else FakeResponse(payload={"models": [{"name": "embed"}]})
        self.post_calls: list[dict[str, Any]] = []
        self.get_calls: list[str] = []

    def post(self, url: str, json: dict[str, Any], timeout: float) -> FakeResponse:
        self.post_calls.append({"url": url, "json": json, "timeout": timeout})
        outcome = self.posts.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get(self, url: str, timeout: float) -> FakeResponse:
        self.get_calls.append(url)
        if isinstance(self.tags, Exception):
            raise self.tags
        return self.tags


def _provider(session: FakeSession, default_dim: int = 4) -> EmbeddingProvider:
    backend = OllamaEmbeddingBackend("http://ollama:11434/", "embed", timeout=30.0, session=session)
    return EmbeddingProvider(backend, EmbeddingState(default_dim=default_dim))


def test_successful_embedding_sets_dimension_once() -> None:
    session = FakeSession(
        FakeResponse(payload={"embedding": [0.1, 0.2, 0.3]}),
        FakeResponse(payload={"embedding": [0.3, 0.2, 0.1]}),
    )
    provider = _provider(session)
    assert provider.embed("first") == [0.1, 0.2, 0.3]
    assert provider.state.dimension == 3
    assert provider.embed("second") == [0.3, 0.2, 0.1]
    assert provider.state.dimension == 3
    assert session.post_calls[0]["url"] == "http://ollama:11434/api/embeddings"
    assert session.post_calls[0]["json"] == {"model": "embed", "prompt": "first"}
    assert session.post_calls[0]["timeout"] == 30.0


@pytest.mark.parametrize(
    "outcome",
    [
        requests.Timeout("timed out"),
        requests.ConnectionError("refused"),
        FakeResponse(status_code=500, text="boom"),
        FakeResponse(payload=ValueError("not json")),
        FakeResponse(payload={"embedding": []}),
        FakeResponse(payload={"embedding": ["a", "b"]}),
        FakeResponse(payload={"other": 1}),
    ],
)
def test_failures_degrade_to_zero_vector_of_default_dim(outcome: Any) -> None:
    provider = _provider(FakeSession(outcome), default_dim=4)
    result = provider.embed_detailed("anything")
    assert result.degraded is True
    assert result.vector == [0.0, 0.0, 0.0, 0.0]
    assert provider.state.dimension is None


def test_failure_after_success_uses_detected_dimension() -> None:
    session = FakeSession(FakeResponse(payload={"embedding": [1.0, 2.0]}), requests.Timeout("slow"))
    provider = _provider(session, default_dim=768)
    provider.embed("warm up")
    assert provider.embed("fails") == [0.0, 0.0]


def test_dimension_change_is_treated_as_failure() -> None:
    session = FakeSession(
        FakeResponse(payload={"embedding": [1.0, 2.0]}),
        FakeResponse(payload={"embedding": [1.0, 2.0, 3.0]}),
    )
    provider = _provider(session)
    provider.embed("first")
    result = provider.embed_detailed("second")
    assert result.degraded is True
    assert result.vector == [0.0, 0.0]
    assert provider.state.dimension == 2


def test_probe_runs_once_and_its_failure_does_not_block() -> None:
    session = FakeSession(
        FakeResponse(payload={"embedding": [0.5]}),
        FakeResponse(payload={"embedding": [0.6]}),
        tags=requests.ConnectionError("no tags"),
    )
    provider = _provider(session)
    assert provider.embed("one") == [0.5]
    assert provider.embed("two") == [0.6]
    assert session.get_calls == ["http://ollama:11434/api/tags"]


def test_hashed_backend_is_deterministic_and_normalized() -> None:
    provider = EmbeddingProvider(HashedEmbeddingBackend(dim=64))
    first = provider.embed("hello world")
    second = provider.embed("hello world")
    assert first == second
    assert len(first) == 64
    assert abs(sum(value * value for value in first) - 1.0) < 1e-6
