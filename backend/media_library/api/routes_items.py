"""Catalog item CRUD routes."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from media_library.api.dependencies import get_repository, get_sync_dispatcher
from media_library.catalog.repository import ItemRepository
from media_library.core.errors import ItemNotFoundError
from media_library.core.logging import get_logger
from media_library.ingest.sync import IndexSynchronizer, IndexSyncQueue
from media_library.models.dto import DeleteResponse, ItemCreateRequest, ItemResponse, ItemUpdateRequest

logger = get_logger(__name__)

router = APIRouter()

# Fields that feed the canonical text; changing any of them needs a re-embed.
_SEARCHABLE_FIELDS = {"title", "type", "synopsis", "keywords", "metadata"}
_CLEARABLE_FIELDS = {"notes", "cover_image"}


@router.get("/items", response_model=list[ItemResponse], summary="List catalog items")
def list_items(
    search: str | None = Query(default=None),
    type: str | None = Query(default=None),
    sort_by: Literal["createdAt", "title"] = Query(default="createdAt"),
    repository: ItemRepository = Depends(get_repository),
) -> list[ItemResponse]:
    records = repository.list_items(search=search, media_type=type, sort_by=sort_by)
    return [ItemResponse.from_record(record) for record in records]


@router.post("/items", response_model=ItemResponse, status_code=201, summary="Create a catalog item")
def create_item(
    request: ItemCreateRequest,
    repository: ItemRepository = Depends(get_repository),
    sync: IndexSynchronizer | IndexSyncQueue = Depends(get_sync_dispatcher),
) -> ItemResponse:
    record = repository.create(
        title=request.title,
        type=request.type,
        synopsis=request.synopsis,
        keywords=request.keywords,
        metadata=request.metadata,
        notes=request.notes,
        cover_image=request.cover_image,
    )
    logger.info("Created item %s", record.id, extra={"ctx_item_id": record.id})
    sync.record_saved(record)
    return ItemResponse.from_record(record)


@router.get("/items/{item_id}", response_model=ItemResponse, summary="Fetch a catalog item")
def get_item(item_id: str, repository: ItemRepository = Depends(get_repository)) -> ItemResponse:
    try:
        record = repository.get(item_id)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Item not found") from exc
    return ItemResponse.from_record(record)


@router.patch("/items/{item_id}", response_model=ItemResponse, summary="Update a catalog item")
def update_item(
    item_id: str,
    request: ItemUpdateRequest,
    repository: ItemRepository = Depends(get_repository),
    sync: IndexSynchronizer | IndexSyncQueue = Depends(get_sync_dispatcher),
) -> ItemResponse:
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key in _CLEARABLE_FIELDS
    }
    try:
        record = repository.update(item_id, changes)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Item not found") from exc
    if _SEARCHABLE_FIELDS & changes.keys():
        sync.record_saved(record)
    return ItemResponse.from_record(record)


@router.delete("/items/{item_id}", response_model=DeleteResponse, summary="Delete a catalog item")
def delete_item(
    item_id: str,
    repository: ItemRepository = Depends(get_repository),
    sync: IndexSynchronizer | IndexSyncQueue = Depends(get_sync_dispatcher),
) -> DeleteResponse:
    try:
        repository.delete(item_id)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Item not found") from exc
    sync.record_deleted(item_id)
    return DeleteResponse(success=True)
