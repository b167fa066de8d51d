"""Render catalog records into the text blob that gets embedded.

The output is the only input to the embedding model, so it must be a pure
function of the record: same record, same bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import orjson

from media_library.models.entities import CatalogRecord, MediaType


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_format_scalar(item) for item in value]
    return [_format_scalar(value)]


def _format_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return orjson.dumps(value).decode("utf-8")
    return str(value)


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(_format_scalar(item) for item in value)
    return _format_scalar(value)


def _labelled(fields: Sequence[tuple[str, Any]]) -> str | None:
    parts: list[str] = []
    for label, value in fields:
        if not _present(value):
            continue
        if isinstance(value, (list, tuple)):
            parts.append(f"{label}: {', '.join(_as_list(value))}")
        else:
            parts.append(f"{label}: {_format_scalar(value)}")
    return ", ".join(parts) if parts else None


@dataclass(frozen=True, slots=True)
class AdultPerformerDetails:
    stage_name: Any = None
    real_name: Any = None
    nationality: Any = None
    ethnicity: Any = None
    studios: Any = None
    genres: Any = None
    awards: Any = None

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> "AdultPerformerDetails":
        return cls(
            stage_name=metadata.get("stageName"),
            real_name=metadata.get("realName"),
            nationality=metadata.get("nationality"),
            ethnicity=metadata.get("ethnicity"),
            studios=metadata.get("studios"),
            genres=metadata.get("genres"),
            awards=metadata.get("awards"),
        )

    def render(self) -> str | None:
        return _labelled(
            [
                ("Stage Name", self.stage_name),
                ("Real Name", self.real_name),
                ("Nationality", self.nationality),
                ("Ethnicity", self.ethnicity),
                ("Studios", self.studios),
                ("Genres", self.genres),
                ("Awards", self.awards),
            ]
        )


@dataclass(frozen=True, slots=True)
class IllustratedSerialDetails:
    author: Any = None
    artist: Any = None
    publisher: Any = None
    genres: Any = None

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> "IllustratedSerialDetails":
        return cls(
            author=metadata.get("author"),
            artist=metadata.get("artist"),
            publisher=metadata.get("publisher"),
            genres=metadata.get("genres"),
        )

    def render(self) -> str | None:
        return _labelled(
            [
                ("Author", self.author),
                ("Artist", self.artist),
                ("Publisher", self.publisher),
                ("Genres", self.genres),
            ]
        )


@dataclass(frozen=True, slots=True)
class ScreenMediaDetails:
    studio: Any = None
    director: Any = None
    genres: Any = None

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> "ScreenMediaDetails":
        return cls(
            studio=metadata.get("studio"),
            director=metadata.get("director"),
            genres=metadata.get("genres"),
        )

    def render(self) -> str | None:
        return _labelled(
            [
                ("Studio", self.studio),
                ("Director", self.director),
                ("Genres", self.genres),
            ]
        )


@dataclass(frozen=True, slots=True)
class GenericDetails:
    entries: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> "GenericDetails":
        return cls(entries=tuple(metadata.items()))

    def render(self) -> str | None:
        rendered = ", ".join(f"{key}: {_format_value(value)}" for key, value in self.entries)
        return f"Metadata: {rendered}"


CategoryDetails = AdultPerformerDetails | IllustratedSerialDetails | ScreenMediaDetails | GenericDetails

FAMILY_BY_TYPE: dict[MediaType, type[CategoryDetails]] = {
    MediaType.PORNSTAR: AdultPerformerDetails,
    MediaType.MANHWA: IllustratedSerialDetails,
    MediaType.MANHUA: IllustratedSerialDetails,
    MediaType.WEBTOON: IllustratedSerialDetails,
    MediaType.DONGHUA: ScreenMediaDetails,
    MediaType.AENI: ScreenMediaDetails,
    MediaType.ANIMATION: ScreenMediaDetails,
    MediaType.HENTAI: ScreenMediaDetails,
}


def category_details(record: CatalogRecord) -> CategoryDetails:
    """Select the category family for a record and parse its metadata."""
    family = FAMILY_BY_TYPE.get(MediaType(record.type), GenericDetails)
    return family.from_metadata(record.metadata or {})


def canonicalize(record: CatalogRecord) -> str:
    """Return the deterministic embedding text for ``record``."""
    media_type = MediaType(record.type)
    parts = [
        f"Title: {record.title}",
        f"Type: {media_type.value}",
        f"Synopsis: {record.synopsis}",
    ]
    if record.keywords:
        parts.append(f"Keywords: {', '.join(record.keywords)}")
    clause = category_details(record).render()
    if clause:
        parts.append(clause)
    return "\n".join(parts)


__all__ = [
    "AdultPerformerDetails",
    "IllustratedSerialDetails",
    "ScreenMediaDetails",
    "GenericDetails",
    "CategoryDetails",
    "FAMILY_BY_TYPE",
    "category_details",
    "canonicalize",
]
