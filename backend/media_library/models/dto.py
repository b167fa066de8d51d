"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from media_library.models.entities import CatalogRecord, MediaType


class ItemCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    type: MediaType
    synopsis: str = Field(min_length=1)
    keywords: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None
    cover_image: str | None = None


class ItemUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    type: MediaType | None = None
    synopsis: str | None = Field(default=None, min_length=1)
    keywords: list[str] | None = None
    metadata: dict[str, Any] | None = None
    notes: str | None = None
    cover_image: str | None = None


class BackupItem(ItemCreateRequest):
    """One record of a backup file; ids and timestamps are kept when present.

    camelCase keys from older exports are accepted alongside snake_case.
    """

    id: str | None = Field(default=None, min_length=1)
    cover_image: str | None = Field(default=None, validation_alias=AliasChoices("cover_image", "coverImage"))
    created_at: datetime | None = Field(default=None, validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: datetime | None = Field(default=None, validation_alias=AliasChoices("updated_at", "updatedAt"))


class ItemResponse(BaseModel):
    id: str
    title: str
    type: MediaType
    synopsis: str
    keywords: list[str]
    metadata: dict[str, Any]
    notes: str | None = None
    cover_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: CatalogRecord) -> "ItemResponse":
        return cls(
            id=record.id,
            title=record.title,
            type=record.type,
            synopsis=record.synopsis,
            keywords=list(record.keywords),
            metadata=dict(record.metadata),
            notes=record.notes,
            cover_image=record.cover_image,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    max_results: int | None = Field(default=None, ge=1, le=20)


class SearchResult(ItemResponse):
    explanation: str
    relevance_score: float


class EnhanceQueryRequest(BaseModel):
    query: str = Field(min_length=1)


class EnhanceQueryResponse(BaseModel):
    original: str
    enhanced: str


class AutofillRequest(BaseModel):
    title: str = Field(min_length=1)
    type: MediaType


class AutofillResponse(BaseModel):
    title: str
    type: MediaType
    synopsis: str = ""
    keywords: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    cover_image_url: str | None = None


class PickRequest(BaseModel):
    prompt: str | None = None


class PickResponse(BaseModel):
    item: ItemResponse
    reason: str


class ItemFailure(BaseModel):
    index: int
    title: str | None = None
    error: str


class RestoreResponse(BaseModel):
    success: bool
    count: int
    failed: int
    failures: list[ItemFailure]
    cancelled: bool = False
    message: str


class BulkImportRequest(BaseModel):
    items: list[dict[str, Any]]


class BulkImportResponse(BaseModel):
    success_count: int
    failure_count: int
    errors: list[ItemFailure]


class RestoreCancelResponse(BaseModel):
    cancelled: bool


class ReindexResponse(BaseModel):
    indexed: int
    failed: int


class DeleteResponse(BaseModel):
    success: bool


__all__ = [
    "ItemCreateRequest",
    "ItemUpdateRequest",
    "BackupItem",
    "ItemResponse",
    "SearchRequest",
    "SearchResult",
    "EnhanceQueryRequest",
    "EnhanceQueryResponse",
    "AutofillRequest",
    "AutofillResponse",
    "PickRequest",
    "PickResponse",
    "ItemFailure",
    "RestoreResponse",
    "BulkImportRequest",
    "BulkImportResponse",
    "ReindexResponse",
    "RestoreCancelResponse",
    "DeleteResponse",
]
