"""Vector index client and the in-process store backend."""

from __future__ import annotations

import math
import threading
from typing import Any, Mapping, Protocol, Sequence

from media_library.core.errors import CollectionNotFoundError, VectorIndexError
from media_library.core.logging import get_logger
from media_library.models.entities import RankedHit

logger = get_logger(__name__)

COLLECTION_METADATA = {"hnsw:space": "cosine"}


class Collection(Protocol):
    def upsert(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict[str, Any]],
        documents: list[str],
    ) -> Any:
        ...

    def delete(self, ids: list[str]) -> Any:
        ...

    def query(
        self,
        query_embeddings: list[list[float]],
        n_results: int,
        include: list[str],
        where: dict[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        ...

    def count(self) -> int:
        ...


class VectorStore(Protocol):
    """Subset of the ChromaDB client API the index client relies on."""

    def get_or_create_collection(self, name: str, metadata: dict[str, Any] | None = None) -> Collection:
        ...

    def delete_collection(self, name: str) -> None:
        ...


class MemoryCollection:
    """Cosine-distance collection held in process memory."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[str, tuple[list[float], dict[str, Any], str]] = {}
        self._dim: int | None = None
        self._lock = threading.Lock()

    def upsert(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict[str, Any]],
        documents: list[str],
    ) -> None:
        with self._lock:
            for item_id, vector, meta, document in zip(ids, embeddings, metadatas, documents):
                if self._dim is None:
                    self._dim = len(vector)
                elif len(vector) != self._dim:
                    raise ValueError("Vector dimension mismatch")
                self._entries[item_id] = (list(vector), dict(meta), document)

    def delete(self, ids: list[str]) -> None:
        with self._lock:
            for item_id in ids:
                self._entries.pop(item_id, None)

    def query(
        self,
        query_embeddings: list[list[float]],
        n_results: int = 10,
        include: list[str] | None = None,
        where: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            entries = [
                (item_id, entry)
                for item_id, entry in self._entries.items()
                if not where or all(entry[1].get(key) == value for key, value in where.items())
            ]
        all_ids: list[list[str]] = []
        all_distances: list[list[float]] = []
        for query_vector in query_embeddings:
            if self._dim is not None and entries and len(query_vector) != self._dim:
                raise ValueError("Query vector dimension mismatch")
            scored = [(item_id, _cosine_distance(vector, query_vector)) for item_id, (vector, _, _) in entries]
            scored.sort(key=lambda item: item[1])
            limited = scored[:n_results]
            all_ids.append([item_id for item_id, _ in limited])
            all_distances.append([distance for _, distance in limited])
        return {"ids": all_ids, "distances": all_distances}

    def get(self, item_id: str) -> tuple[list[float], dict[str, Any], str] | None:
        with self._lock:
            return self._entries.get(item_id)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)


class MemoryVectorStore:
    """In-process stand-in for a ChromaDB client; contents do not survive restarts."""

    def __init__(self) -> None:
        self._collections: dict[str, MemoryCollection] = {}
        self._lock = threading.Lock()

    def get_or_create_collection(self, name: str, metadata: dict[str, Any] | None = None) -> MemoryCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = MemoryCollection(name)
            return self._collections[name]

    def delete_collection(self, name: str) -> None:
        with self._lock:
            if self._collections.pop(name, None) is None:
                raise CollectionNotFoundError(name)

    def list_collections(self) -> list[str]:
        with self._lock:
            return list(self._collections)


class VectorIndexClient:
    """Owns one named collection: ensure, upsert, delete, query, wipe.

    Failures are raised as :class:`VectorIndexError`; deciding whether to
    swallow them belongs to the caller.
    """

    def __init__(self, store: VectorStore, collection_name: str) -> None:
        self.store = store
        self.collection_name = collection_name
        self._collection: Collection | None = None
        self._lock = threading.Lock()

    def ensure_collection(self) -> Collection:
        collection = self._collection
        if collection is not None:
            return collection
        with self._lock:
            if self._collection is None:
                try:
                    self._collection = self._get_or_create()
                except Exception as exc:
                    logger.warning("Collection %s unavailable, retrying once: %s", self.collection_name, exc)
                    self._collection = None
                    try:
                        self._collection = self._get_or_create()
                    except Exception as retry_exc:
                        raise VectorIndexError(
                            f"Could not open collection {self.collection_name}: {retry_exc}"
                        ) from retry_exc
            return self._collection

    def upsert(self, item_id: str, vector: Sequence[float], sidecar: Mapping[str, Any], source_text: str) -> None:
        collection = self.ensure_collection()
        try:
            collection.upsert(
                ids=[item_id],
                embeddings=[list(vector)],
                metadatas=[dict(sidecar)],
                documents=[source_text],
            )
        except Exception as exc:
            self._reset()
            raise VectorIndexError(f"Upsert of {item_id} failed: {exc}") from exc

    def delete(self, item_id: str) -> None:
        collection = self.ensure_collection()
        try:
            collection.delete(ids=[item_id])
        except Exception as exc:
            self._reset()
            raise VectorIndexError(f"Delete of {item_id} failed: {exc}") from exc

    def query(self, vector: Sequence[float], top_k: int) -> list[RankedHit]:
        """Nearest entries to ``vector``, closest first.

        Entries whose sidecar marks them as degraded are never returned.
        """
        collection = self.ensure_collection()
        try:
            size = collection.count()
            if size == 0 or top_k <= 0:
                return []
            raw = collection.query(
                query_embeddings=[list(vector)],
                n_results=min(top_k, size),
                include=["distances"],
                where={"degraded": False},
            )
        except Exception as exc:
            self._reset()
            raise VectorIndexError(f"Query failed: {exc}") from exc
        ids = (raw.get("ids") or [[]])[0] or []
        distances = (raw.get("distances") or [[]])[0] or []
        hits = [RankedHit(id=item_id, distance=max(0.0, float(distance))) for item_id, distance in zip(ids, distances)]
        hits.sort(key=lambda hit: hit.distance)
        return hits

    def count(self) -> int:
        collection = self.ensure_collection()
        try:
            return int(collection.count())
        except Exception as exc:
            self._reset()
            raise VectorIndexError(f"Count failed: {exc}") from exc

    def wipe(self) -> None:
        """Drop the collection (missing is fine) and recreate it empty."""
        with self._lock:
            self._collection = None
            try:
                self.store.delete_collection(name=self.collection_name)
            except Exception as exc:
                if not _is_missing_collection(exc):
                    raise VectorIndexError(f"Could not delete collection {self.collection_name}: {exc}") from exc
                logger.info("Collection %s does not exist, skipping deletion", self.collection_name)
        self.ensure_collection()

    def _get_or_create(self) -> Collection:
        return self.store.get_or_create_collection(name=self.collection_name, metadata=dict(COLLECTION_METADATA))

    def _reset(self) -> None:
        with self._lock:
            self._collection = None


def _is_missing_collection(exc: Exception) -> bool:
    if isinstance(exc, CollectionNotFoundError):
        return True
    if type(exc).__name__ in {"NotFoundError", "ChromaNotFoundError"}:
        return True
    return "does not exist" in str(exc)


def _cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 1.0
    similarity = sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)
    return max(0.0, 1.0 - similarity)


__all__ = [
    "Collection",
    "VectorStore",
    "MemoryCollection",
    "MemoryVectorStore",
    "VectorIndexClient",
]
