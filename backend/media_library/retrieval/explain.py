"""Batch explanations for ranked search results."""

from __future__ import annotations

from typing import Any, Sequence

from media_library.core.logging import get_logger
from media_library.llm.generation import TextGenerator
from media_library.llm.json_extract import extract_json_array
from media_library.llm.prompts import explanation_prompt
from media_library.models.entities import CatalogRecord

logger = get_logger(__name__)

GENERATION_FAILED_EXPLANATION = "This item matches your search query."
UNPARSEABLE_EXPLANATION = "This item matches your search query based on its content and themes."
MISSING_EXPLANATION = "This item matches your search."


class ExplanationEnricher:
    """One generation call per result set, never one per item."""

    def __init__(self, generator: TextGenerator) -> None:
        self.generator = generator

    def explain(self, query_text: str, records: Sequence[CatalogRecord]) -> list[str]:
        if not records:
            return []
        prompt = explanation_prompt(query_text, records)
        logger.info("Generating batch explanations for %s items in one call", len(records))
        try:
            response = self.generator.generate(prompt)
        except Exception as exc:
            logger.error("Error generating batch explanations: %s", exc)
            return [GENERATION_FAILED_EXPLANATION] * len(records)
        return align_explanations(response, len(records))


def align_explanations(response: str, count: int) -> list[str]:
    """Map a generation response onto ``count`` explanations.

    An unparseable response or one with more entries than items is treated as
    misaligned and replaced wholesale; a short array only falls back for the
    missing positions.
    """
    entries = extract_json_array(response)
    if entries is None:
        logger.warning("Failed to parse batch explanations: %.200s", response)
        return [UNPARSEABLE_EXPLANATION] * count
    if len(entries) > count:
        logger.warning("Got %s explanations for %s items; discarding them", len(entries), count)
        return [UNPARSEABLE_EXPLANATION] * count
    explanations = [_entry_text(entry) for entry in entries]
    explanations.extend([None] * (count - len(explanations)))
    return [text or MISSING_EXPLANATION for text in explanations]


def _entry_text(entry: Any) -> str | None:
    if isinstance(entry, dict):
        entry = entry.get("explanation")
    if isinstance(entry, str) and entry.strip():
        return entry.strip()
    return None


__all__ = [
    "GENERATION_FAILED_EXPLANATION",
    "UNPARSEABLE_EXPLANATION",
    "MISSING_EXPLANATION",
    "ExplanationEnricher",
    "align_explanations",
]
