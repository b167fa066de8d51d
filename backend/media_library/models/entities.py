"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class MediaType(str, Enum):
    MOVIE = "MOVIE"
    SERIES = "SERIES"
    ANIME = "ANIME"
    BOOK = "BOOK"
    COMIC = "COMIC"
    MANGA = "MANGA"
    MANHWA = "MANHWA"
    MANHUA = "MANHUA"
    WEBTOON = "WEBTOON"
    DONGHUA = "DONGHUA"
    AENI = "AENI"
    ANIMATION = "ANIMATION"
    HENTAI = "HENTAI"
    GAME = "GAME"
    PERSON = "PERSON"
    PORNSTAR = "PORNSTAR"
    FRANCHISE = "FRANCHISE"


@dataclass(slots=True)
class CatalogRecord:
    id: str
    title: str
    type: MediaType
    synopsis: str
    keywords: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    notes: str | None = None
    cover_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class RankedHit:
    """One nearest-neighbour match; lower distance is closer."""

    id: str
    distance: float


__all__ = ["MediaType", "CatalogRecord", "RankedHit"]
