"""Keep the vector index in step with record-store mutations.

The record store is authoritative. Index writes happen after the record-store
commit and are best-effort for single items; only the wipe step of a bulk
restore is allowed to fail the caller.
"""

from __future__ import annotations

import queue
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from media_library.catalog.canonical import canonicalize
from media_library.catalog.repository import ItemRepository
from media_library.core.errors import RestoreInProgressError, VectorIndexError
from media_library.core.logging import get_logger
from media_library.core.metrics import INDEX_SIZE, INDEX_SYNC
from media_library.ingest.embeddings import EmbeddingProvider
from media_library.models.dto import BackupItem
from media_library.models.entities import CatalogRecord
from media_library.retrieval.vector_index import VectorIndexClient

logger = get_logger(__name__)


@dataclass(slots=True)
class BatchFailure:
    index: int
    title: str | None
    error: str


@dataclass(slots=True)
class BatchReport:
    """Outcome of a restore or import batch."""

    inserted: int = 0
    failures: list[BatchFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)


@dataclass(slots=True)
class ReindexReport:
    indexed: int = 0
    failed: int = 0


class IndexSynchronizer:
    """Applies record-store mutations to the vector index."""

    def __init__(
        self,
        repository: ItemRepository,
        embedder: EmbeddingProvider,
        index: VectorIndexClient,
    ) -> None:
        self.repository = repository
        self.embedder = embedder
        self.index = index
        self.dispatch_queue: IndexSyncQueue | None = None
        self._restore_lock = threading.Lock()
        self._restore_cancel: threading.Event | None = None

    def index_record(self, record: CatalogRecord) -> None:
        """Canonicalize, embed and upsert one record. Index errors propagate."""
        text = canonicalize(record)
        result = self.embedder.embed_detailed(text)
        sidecar = {"type": record.type.value, "degraded": result.degraded}
        self.index.upsert(record.id, result.vector, sidecar, text)

    def record_saved(self, record: CatalogRecord) -> bool:
        try:
            self.index_record(record)
        except Exception as exc:
            INDEX_SYNC.labels(operation="upsert", status="error").inc()
            logger.error("Index upsert failed for %s: %s", record.id, exc, extra={"ctx_item_id": record.id})
            return False
        INDEX_SYNC.labels(operation="upsert", status="ok").inc()
        self._update_index_metric()
        return True

    def record_deleted(self, item_id: str) -> bool:
        try:
            self.index.delete(item_id)
        except Exception as exc:
            INDEX_SYNC.labels(operation="delete", status="error").inc()
            logger.error("Index delete failed for %s: %s", item_id, exc, extra={"ctx_item_id": item_id})
            return False
        INDEX_SYNC.labels(operation="delete", status="ok").inc()
        self._update_index_metric()
        return True

    def restore(
        self,
        items: Sequence[Any],
        cancel: threading.Event | None = None,
    ) -> BatchReport:
        """Replace the whole library with ``items``.

        Records and index are wiped first; a failing wipe aborts the restore.
        Queued single-item sync is drained between the two wipes so no entry
        for a removed record lands in the fresh collection. Each item is then
        inserted with its original id when it has one. Invalid items are
        counted and skipped. The run stops between items once ``cancel`` (or
        :meth:`cancel_restore`) fires.
        """
        if not self._restore_lock.acquire(blocking=False):
            raise RestoreInProgressError("A restore is already running")
        if cancel is None:
            cancel = threading.Event()
        self._restore_cancel = cancel
        try:
            removed = self.repository.delete_all()
            logger.info("Restore wiped %s records", removed)
            if self.dispatch_queue is not None:
                self.dispatch_queue.join()
            self.index.wipe()
            report = self._load_batch(items, cancel, keep_identity=True)
            logger.info(
                "Restore finished: %s inserted, %s failed",
                report.inserted,
                report.failed,
                extra={"ctx_cancelled": report.cancelled},
            )
            self._update_index_metric()
            return report
        finally:
            self._restore_cancel = None
            self._restore_lock.release()

    def cancel_restore(self) -> bool:
        """Ask a running restore to stop; False when none is running."""
        cancel = self._restore_cancel
        if cancel is None:
            return False
        logger.warning("Restore cancellation requested")
        cancel.set()
        return True

    def bulk_import(self, items: Sequence[Any], cancel: threading.Event | None = None) -> BatchReport:
        """Append ``items`` as new records with fresh ids."""
        report = self._load_batch(items, cancel, keep_identity=False)
        self._update_index_metric()
        return report

    def reindex(self) -> ReindexReport:
        """Rebuild the index from scratch out of every stored record.

        The collection is wiped first so its vector width follows the current
        model, not one fixed by zero vectors from an outage. A failing wipe
        propagates.
        """
        report = ReindexReport()
        self.index.wipe()
        for record in self.repository.all():
            try:
                self.index_record(record)
            except VectorIndexError as exc:
                logger.error("Reindex failed for %s: %s", record.id, exc)
                report.failed += 1
                continue
            report.indexed += 1
        self._update_index_metric()
        return report

    def rebuild_if_empty(self) -> ReindexReport | None:
        """Reindex when the index holds nothing but the record store does."""
        if self.index.count() > 0 or self.repository.count() == 0:
            return None
        logger.info("Vector index is empty; rebuilding from the record store")
        return self.reindex()

    def _load_batch(
        self,
        items: Sequence[Any],
        cancel: threading.Event | None,
        keep_identity: bool,
    ) -> BatchReport:
        report = BatchReport()
        for position, raw in enumerate(items):
            if cancel is not None and cancel.is_set():
                logger.warning("Batch cancelled after %s of %s items", position, len(items))
                report.cancelled = True
                break
            try:
                record = self._insert(raw, keep_identity)
            except (ValueError, sqlite3.Error) as exc:
                title = raw.get("title") if isinstance(raw, Mapping) else None
                title = title if isinstance(title, str) else None
                logger.warning("Skipping item %s (%s): %s", position, title, exc)
                report.failures.append(BatchFailure(index=position, title=title, error=str(exc)))
                continue
            report.inserted += 1
            try:
                self.index_record(record)
            except Exception as exc:
                INDEX_SYNC.labels(operation="upsert", status="error").inc()
                logger.error("Error creating embedding for item %s: %s", record.id, exc)
        return report

    def _insert(self, raw: Any, keep_identity: bool) -> CatalogRecord:
        item = BackupItem.model_validate(raw)
        return self.repository.create(
            title=item.title,
            type=item.type,
            synopsis=item.synopsis,
            keywords=item.keywords,
            metadata=item.metadata,
            notes=item.notes,
            cover_image=item.cover_image,
            item_id=item.id if keep_identity else None,
            created_at=item.created_at if keep_identity else None,
            updated_at=item.updated_at if keep_identity else None,
        )

    def _update_index_metric(self) -> None:
        try:
            INDEX_SIZE.set(self.index.count())
        except VectorIndexError as exc:
            logger.debug("Could not refresh index size metric: %s", exc)


class IndexSyncQueue:
    """Bounded single-worker queue for single-item index sync.

    Pending work is coalesced per item id, so only the latest mutation of an
    id is applied. One worker thread means mutations of the same id are
    applied in submission order.
    """

    _STOP = object()

    def __init__(self, synchronizer: IndexSynchronizer, maxsize: int = 256) -> None:
        self.synchronizer = synchronizer
        synchronizer.dispatch_queue = self
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=maxsize)
        self._pending: dict[str, Callable[[], bool]] = {}
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None

    def record_saved(self, record: CatalogRecord) -> None:
        self._submit(record.id, lambda: self.synchronizer.record_saved(record))

    def record_deleted(self, item_id: str) -> None:
        self._submit(item_id, lambda: self.synchronizer.record_deleted(item_id))

    def join(self) -> None:
        """Block until every submitted task has been applied."""
        self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            worker = self._worker
            self._worker = None
        if worker is None:
            return
        self._queue.put(self._STOP)
        worker.join(timeout=timeout)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def _submit(self, item_id: str, task: Callable[[], bool]) -> None:
        self._ensure_worker()
        with self._lock:
            coalesced = item_id in self._pending
            self._pending[item_id] = task
        if coalesced:
            logger.debug("Coalesced pending index sync for %s", item_id)
            return
        self._queue.put(item_id)

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run, name="index-sync", daemon=True)
            self._worker.start()

    def _run(self) -> None:
        while True:
            item_id = self._queue.get()
            try:
                if item_id is self._STOP:
                    return
                with self._lock:
                    task = self._pending.pop(item_id, None)
                if task is not None:
                    task()
            except Exception:
                logger.exception("Index sync task for %s crashed", item_id)
            finally:
                self._queue.task_done()


__all__ = [
    "BatchFailure",
    "BatchReport",
    "ReindexReport",
    "IndexSynchronizer",
    "IndexSyncQueue",
]
