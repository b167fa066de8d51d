"""Prompt templates sent to the generation provider."""

from __future__ import annotations

from typing import Sequence

import orjson

from media_library.models.entities import CatalogRecord, MediaType

CATALOG_TYPES = ", ".join(member.value.lower() for member in MediaType)


def describe_record(record: CatalogRecord) -> str:
    return "\n".join(
        [
            f"Title: {record.title}",
            f"Type: {record.type.value}",
            f"Synopsis: {record.synopsis}",
            f"Keywords: {', '.join(record.keywords)}",
            f"Metadata: {orjson.dumps(record.metadata).decode('utf-8')}",
        ]
    )


def explanation_prompt(query: str, records: Sequence[CatalogRecord]) -> str:
    blocks = "\n\n".join(f"ITEM {idx}:\n{describe_record(record)}" for idx, record in enumerate(records, start=1))
    example = ",\n".join(
        f'  {{"explanation": "Your explanation for Item {idx}"}}' for idx in range(1, len(records) + 1)
    )
    return (
        f'A user searched for: "{query}"\n\n'
        f"These {len(records)} items were found in their library. For EACH item below, provide a brief "
        "1-2 sentence explanation of why it matches the search query. Be specific and mention relevant "
        "themes, genres, or elements.\n\n"
        f"{blocks}\n\n"
        "Return your response as a JSON array with one object per item, in the same order as the items, "
        "using this exact format (no markdown formatting, no code blocks):\n"
        f"[\n{example}\n]"
    )


def enhance_query_prompt(query: str) -> str:
    return (
        f"You are a search query optimizer for a media library that contains {CATALOG_TYPES}.\n\n"
        "Rewrite the user's natural language search into the key themes, genres, plot elements, "
        "character types, descriptors and specific names that matter for semantic vector search.\n\n"
        f'User\'s Original Query: "{query}"\n\n'
        "Rules:\n"
        '1. Remove filler such as "I want", "looking for", "show me".\n'
        "2. Keep specific names (actors, directors, titles, authors).\n"
        "3. Keep mature-content descriptors when the query implies them.\n"
        "4. Aim for 5-15 keywords or short phrases.\n"
        "5. Return ONLY the enhanced query as plain text: no explanations, no markdown, no quotes.\n\n"
        "Enhanced Query:"
    )


_AUTOFILL_METADATA_HINTS = """\
- MOVIE/SERIES/ANIME/DONGHUA/AENI/ANIMATION/HENTAI: releaseYear, director, mainActors, genres, studio, episodes
- BOOK/COMIC/MANGA/MANHWA/MANHUA/WEBTOON: author, artist, publicationYear, pages, genres, publisher
- GAME: developer, publisher, platforms, releaseYear, genres
- PERSON: knownFor, birthYear, notableWorks
- FRANCHISE: creator, mediaTypes
- PORNSTAR: stageName, realName, birthYear, nationality, ethnicity, debutYear, status, studios, genres, awards, physicalAttributes"""


def autofill_prompt(title: str, media_type: MediaType) -> str:
    return (
        "You are an expert media research analyst. Gather accurate information about the item below.\n\n"
        f'Title: "{title}"\n'
        f'Type: "{media_type.value}"\n\n'
        "Respond with a single JSON object and nothing else, with these keys:\n"
        '  "title": the official title,\n'
        '  "type": the type you were given,\n'
        '  "coverImageUrl": a direct URL to a cover image, or null,\n'
        '  "synopsis": a 3-5 sentence summary (a biography for people),\n'
        '  "keywords": 10-15 diverse keywords (themes, genres, plot elements, creators, content warnings),\n'
        '  "metadata": an object holding only the fields relevant to the type, null when unknown:\n'
        f"{_AUTOFILL_METADATA_HINTS}\n"
    )


def pitch_prompt(record: CatalogRecord, prompt: str | None) -> str:
    details = describe_record(record)
    if prompt:
        return (
            f'A user is looking for: "{prompt}"\n\n'
            f"We selected this item:\n{details}\n\n"
            "In 2-3 sentences, explain why this is a great choice for them right now. "
            "Be enthusiastic and specific about what makes this item special."
        )
    return (
        f"This item was randomly selected:\n{details}\n\n"
        "In 2-3 sentences, create an enthusiastic pitch for why the user should check this out. "
        "Highlight what makes it interesting and worth their time."
    )


__all__ = [
    "describe_record",
    "explanation_prompt",
    "enhance_query_prompt",
    "autofill_prompt",
    "pitch_prompt",
]
