"""Generation-backed helpers around the catalog: query rewriting, autofill, picks."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from media_library.catalog.repository import ItemRepository
from media_library.core.errors import EmptyLibraryError, GenerationError
from media_library.core.logging import get_logger
from media_library.llm.generation import TextGenerator
from media_library.llm.json_extract import extract_json_object
from media_library.llm.prompts import autofill_prompt, enhance_query_prompt, pitch_prompt
from media_library.models.entities import CatalogRecord, MediaType
from media_library.retrieval.search import QueryService

logger = get_logger(__name__)

DEFAULT_PITCH = "This is a random pick from your library!"


@dataclass(slots=True)
class Pick:
    record: CatalogRecord
    reason: str


class LibraryAssistant:
    def __init__(
        self,
        generator: TextGenerator,
        repository: ItemRepository,
        query_service: QueryService,
        rng: random.Random | None = None,
    ) -> None:
        self.generator = generator
        self.repository = repository
        self.query_service = query_service
        self.rng = rng or random.Random()

    def enhance_query(self, query: str) -> str:
        enhanced = self.generator.generate(enhance_query_prompt(query)).strip().strip('"')
        if not enhanced:
            raise GenerationError("Query enhancement returned no text")
        return enhanced

    def autofill(self, title: str, media_type: MediaType) -> dict[str, Any]:
        """Ask the generator for synopsis, keywords and metadata of a new item."""
        response = self.generator.generate(autofill_prompt(title, media_type))
        data = extract_json_object(response)
        if data is None:
            logger.warning("Autofill response was not a JSON object: %.200s", response)
            raise GenerationError("Autofill returned no usable JSON object")
        keywords = data.get("keywords")
        metadata = data.get("metadata")
        cover = data.get("coverImageUrl")
        return {
            "title": str(data.get("title") or title),
            "type": media_type,
            "synopsis": str(data.get("synopsis") or ""),
            "keywords": [str(word) for word in keywords] if isinstance(keywords, list) else [],
            "metadata": metadata if isinstance(metadata, dict) else {},
            "cover_image_url": cover if isinstance(cover, str) and cover else None,
        }

    def pick(self, prompt: str | None = None) -> Pick:
        """Nearest match for ``prompt``, or a uniformly random record without one."""
        prompt = prompt.strip() if prompt else None
        if prompt:
            match = self.query_service.nearest(prompt)
            if match is None:
                raise EmptyLibraryError("No items found in your library")
            record = match.record
        else:
            total = self.repository.count()
            if total == 0:
                raise EmptyLibraryError("Your library is empty")
            record = self.repository.sample(self.rng.randrange(total))
            if record is None:
                raise EmptyLibraryError("No item found")
        try:
            reason = self.generator.generate(pitch_prompt(record, prompt)).strip() or DEFAULT_PITCH
        except Exception as exc:
            logger.error("Error generating recommendation reason: %s", exc)
            reason = DEFAULT_PITCH
        return Pick(record=record, reason=reason)


__all__ = ["DEFAULT_PITCH", "Pick", "LibraryAssistant"]
