"""Embedding provider adapter.

Embeddings are best-effort enrichment: :meth:`EmbeddingProvider.embed` never
raises. A failed call yields a zero vector of the detected (or default)
dimension so callers can always proceed.
"""

from __future__ import annotations

import hashlib
import math
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from media_library.core.logging import get_logger
from media_library.core.metrics import EMBEDDING_FAILURES

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class EmbeddingBackendError(RuntimeError):
    """Raised by a backend when the provider returns an unusable response."""


@dataclass(slots=True)
class EmbeddingResult:
    vector: list[float]
    dim: int
    degraded: bool = False


@dataclass
class EmbeddingState:
    """Process-wide embedding facts, created once and shared by reference.

    ``dimension`` is set by the first successful call and never changes
    afterwards; concurrent first writers observe the same provider and agree.
    """

    default_dim: int = 768
    dimension: int | None = None
    probed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def active_dim(self) -> int:
        return self.dimension if self.dimension is not None else self.default_dim

    def observe(self, dim: int) -> bool:
        """Record ``dim`` if nothing was recorded yet; return True when it was set."""
        with self._lock:
            if self.dimension is None:
                self.dimension = dim
                return True
            return False

    def claim_probe(self) -> bool:
        with self._lock:
            if self.probed:
                return False
            self.probed = True
            return True


class EmbeddingBackend(Protocol):
    name: str

    def encode(self, text: str) -> list[float]:
        ...

    def probe(self) -> bool:
        ...


class OllamaEmbeddingBackend:
    """Embeddings from an Ollama server's ``/api/embeddings`` endpoint."""

    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 30.0,
        probe_timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self.session = session or requests.Session()

    def encode(self, text: str) -> list[float]:
        response = self.session.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model, "prompt": text},
            timeout=self.timeout,
        )
        if not response.ok:
            raise EmbeddingBackendError(f"Ollama API error: {response.status_code} - {response.text[:200]}")
        payload = response.json()
        return _coerce_vector(payload.get("embedding") if isinstance(payload, dict) else None)

    def probe(self) -> bool:
        logger.info("Probing embedding provider at %s (model %s)", self.base_url, self.model)
        try:
            response = self.session.get(f"{self.base_url}/api/tags", timeout=self.probe_timeout)
        except requests.RequestException as exc:
            logger.warning("Embedding provider probe failed: %s", exc)
            return False
        if not response.ok:
            logger.warning("Embedding provider probe returned status %s", response.status_code)
            return False
        try:
            models = [entry.get("name") for entry in response.json().get("models", [])]
        except (ValueError, AttributeError):
            models = []
        logger.info("Embedding provider reachable; available models: %s", ", ".join(filter(None, models)))
        return True


class HashedEmbeddingBackend:
    """Lightweight hashed bag-of-words embedding with deterministic output."""

    name = "hashed"

    def __init__(self, dim: int = 384) -> None:
        self.dim = dim

    def encode(self, text: str) -> list[float]:
        vector = [0.0] * self.dim
        for token in _tokenize(text):
            vector[_hash_token(token, self.dim)] += 1.0
        _normalize(vector)
        return vector

    def probe(self) -> bool:
        return True


class EmbeddingProvider:
    """Degrading wrapper around an embedding backend."""

    def __init__(self, backend: EmbeddingBackend, state: EmbeddingState | None = None) -> None:
        self.backend = backend
        self.state = state or EmbeddingState()

    @property
    def dim(self) -> int:
        return self.state.active_dim

    def embed(self, text: str) -> list[float]:
        return self.embed_detailed(text).vector

    def embed_detailed(self, text: str) -> EmbeddingResult:
        self._probe_once()
        try:
            vector = self.backend.encode(text)
            expected = self.state.dimension
            if expected is not None and len(vector) != expected:
                raise EmbeddingBackendError(f"Embedding dimension changed from {expected} to {len(vector)}")
        except Exception as exc:
            EMBEDDING_FAILURES.inc()
            logger.warning(
                "Embedding failed, using zero vector: %s",
                exc,
                extra={"ctx_backend": self.backend.name},
            )
            dim = self.state.active_dim
            return EmbeddingResult(vector=[0.0] * dim, dim=dim, degraded=True)
        if self.state.observe(len(vector)):
            logger.info("Embedding dimension detected: %s", len(vector))
        return EmbeddingResult(vector=vector, dim=len(vector))

    def _probe_once(self) -> None:
        if not self.state.claim_probe():
            return
        try:
            self.backend.probe()
        except Exception as exc:
            logger.warning("Embedding provider probe raised: %s", exc)


def build_backend(
    backend: str,
    base_url: str,
    model: str,
    timeout: float,
    probe_timeout: float,
) -> EmbeddingBackend:
    if backend == "hashed":
        return HashedEmbeddingBackend()
    return OllamaEmbeddingBackend(base_url, model, timeout=timeout, probe_timeout=probe_timeout)


def _coerce_vector(raw: Any) -> list[float]:
    if not isinstance(raw, list) or not raw:
        raise EmbeddingBackendError("Invalid embedding response: missing 'embedding' array")
    vector: list[float] = []
    for value in raw:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingBackendError("Invalid embedding response: non-numeric component")
        vector.append(float(value))
    return vector


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingBackend",
    "EmbeddingBackendError",
    "EmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingState",
    "HashedEmbeddingBackend",
    "OllamaEmbeddingBackend",
    "build_backend",
]
