"""Administrative routes: backup, restore, bulk import, reindex and metrics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import APIRouter, Body, Depends, HTTPException, Response

from media_library.api.dependencies import get_repository, get_synchronizer
from media_library.catalog.repository import ItemRepository
from media_library.core.errors import RestoreInProgressError, VectorIndexError
from media_library.core.logging import get_logger
from media_library.core.metrics import metrics_response
from media_library.ingest.sync import BatchReport, IndexSynchronizer
from media_library.models.dto import (
    BulkImportRequest,
    BulkImportResponse,
    ItemFailure,
    ItemResponse,
    ReindexResponse,
    RestoreCancelResponse,
    RestoreResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("/backup", summary="Export every item as a JSON file")
def backup(repository: ItemRepository = Depends(get_repository)) -> Response:
    records = repository.all()
    payload = [ItemResponse.from_record(record).model_dump(mode="json") for record in records]
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    logger.info("Exporting %s items", len(payload))
    return Response(
        content=orjson.dumps(payload, option=orjson.OPT_INDENT_2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="media-library-backup-{stamp}.json"'},
    )


@router.post("/restore", response_model=RestoreResponse, summary="Replace the library with a backup")
def restore(
    items: list[Any] = Body(...),
    synchronizer: IndexSynchronizer = Depends(get_synchronizer),
) -> RestoreResponse:
    try:
        report = synchronizer.restore(items)
    except RestoreInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except VectorIndexError as exc:
        logger.error("Restore aborted: %s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to restore backup: {exc}") from exc
    message = f"Successfully restored {report.inserted} items"
    if report.failed:
        message += f" ({report.failed} skipped)"
    return RestoreResponse(
        success=not report.cancelled,
        count=report.inserted,
        failed=report.failed,
        failures=_failures(report),
        cancelled=report.cancelled,
        message=message,
    )


@router.post("/restore/cancel", response_model=RestoreCancelResponse, summary="Stop a running restore")
def cancel_restore(synchronizer: IndexSynchronizer = Depends(get_synchronizer)) -> RestoreCancelResponse:
    return RestoreCancelResponse(cancelled=synchronizer.cancel_restore())


@router.post("/bulk-import", response_model=BulkImportResponse, summary="Append a batch of items")
def bulk_import(
    request: BulkImportRequest,
    synchronizer: IndexSynchronizer = Depends(get_synchronizer),
) -> BulkImportResponse:
    report = synchronizer.bulk_import(request.items)
    return BulkImportResponse(
        success_count=report.inserted,
        failure_count=report.failed,
        errors=_failures(report),
    )


@router.post("/reindex", response_model=ReindexResponse, summary="Rebuild the vector index from stored items")
def reindex(synchronizer: IndexSynchronizer = Depends(get_synchronizer)) -> ReindexResponse:
    try:
        report = synchronizer.reindex()
    except VectorIndexError as exc:
        logger.error("Reindex aborted: %s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to reindex: {exc}") from exc
    return ReindexResponse(indexed=report.indexed, failed=report.failed)


@router.get("/metrics", summary="Prometheus metrics")
async def metrics() -> Response:
    return metrics_response()


def _failures(report: BatchReport) -> list[ItemFailure]:
    return [
        ItemFailure(index=failure.index, title=failure.title, error=failure.error)
        for failure in report.failures
    ]
