"""Domain exceptions raised across the media library."""

from __future__ import annotations


class MediaLibraryError(Exception):
    """Base class for media library errors."""


class ItemNotFoundError(MediaLibraryError):
    """Raised when a catalog record does not exist."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class EmptyLibraryError(MediaLibraryError):
    """Raised when a pick is requested but nothing can be picked."""


class VectorIndexError(MediaLibraryError):
    """Raised when the vector index cannot complete an operation."""


class CollectionNotFoundError(VectorIndexError):
    """Raised by index backends when a named collection does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Collection {name} does not exist.")
        self.name = name


class SearchUnavailableError(MediaLibraryError):
    """Raised when a search cannot reach the vector index or record store."""


class GenerationError(MediaLibraryError):
    """Raised when the text-generation provider fails or returns unusable output."""


class RestoreInProgressError(MediaLibraryError):
    """Raised when a bulk restore is requested while another is running."""


__all__ = [
    "MediaLibraryError",
    "ItemNotFoundError",
    "EmptyLibraryError",
    "VectorIndexError",
    "CollectionNotFoundError",
    "SearchUnavailableError",
    "GenerationError",
    "RestoreInProgressError",
]
