"""Tests for embedding-text canonicalization."""

from media_library.catalog.canonical import (
    AdultPerformerDetails,
    GenericDetails,
    IllustratedSerialDetails,
    ScreenMediaDetails,
    canonicalize,
    category_details,
)
from media_library.models.entities import CatalogRecord, MediaType


def _record(media_type: MediaType, metadata: dict | None = None, keywords: list[str] | None = None) -> CatalogRecord:
    return CatalogRecord(
        id="a",
        title="Neon Run",
        type=media_type,
        synopsis="A hacker flees a megacorp",
        keywords=keywords if keywords is not None else ["cyberpunk", "chase"],
        metadata=metadata or {},
    )


def test_generic_record_layout() -> None:
    text = canonicalize(_record(MediaType.MOVIE, {"year": 2031, "genres": ["thriller", "sci-fi"]}))
    assert text.split("\n") == [
        "Title: Neon Run",
        "Type: MOVIE",
        "Synopsis: A hacker flees a megacorp",
        "Keywords: cyberpunk, chase",
        "Metadata: year: 2031, genres: thriller, sci-fi",
    ]


def test_canonicalize_is_deterministic() -> None:
    first = canonicalize(_record(MediaType.MOVIE, {"a": 1, "b": None, "c": True}))
    second = canonicalize(_record(MediaType.MOVIE, {"a": 1, "b": None, "c": True}))
    assert first == second
    assert first.endswith("Metadata: a: 1, b: null, c: true")


def test_empty_keywords_line_is_omitted_and_metadata_line_kept() -> None:
    text = canonicalize(_record(MediaType.BOOK, {}, keywords=[]))
    assert "Keywords:" not in text
    assert text.endswith("\nMetadata: ")


def test_screen_media_family_skips_missing_fields() -> None:
    record = _record(MediaType.DONGHUA, {"studio": "Sparkly Key", "genres": ["action", "fantasy"], "year": 2020})
    assert isinstance(category_details(record), ScreenMediaDetails)
    assert canonicalize(record).endswith("\nStudio: Sparkly Key, Genres: action, fantasy")


def test_illustrated_serial_family() -> None:
    record = _record(MediaType.WEBTOON, {"author": "Kim", "artist": "Lee", "publisher": "", "genres": "romance"})
    assert isinstance(category_details(record), IllustratedSerialDetails)
    assert canonicalize(record).endswith("\nAuthor: Kim, Artist: Lee, Genres: romance")


def test_adult_performer_family_uses_camel_case_keys() -> None:
    record = _record(MediaType.PORNSTAR, {"stageName": "Star", "nationality": "US", "awards": []})
    assert isinstance(category_details(record), AdultPerformerDetails)
    assert canonicalize(record).endswith("\nStage Name: Star, Nationality: US")


def test_family_without_any_field_adds_no_clause() -> None:
    text = canonicalize(_record(MediaType.MANHWA, {"year": 2019}))
    assert text.split("\n")[-1] == "Keywords: cyberpunk, chase"


def test_anime_renders_as_generic() -> None:
    record = _record(MediaType.ANIME, {"studio": "Bones"})
    assert isinstance(category_details(record), GenericDetails)
    assert canonicalize(record).endswith("\nMetadata: studio: Bones")
