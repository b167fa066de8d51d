"""Pull JSON values out of free-form LLM responses."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_DECODER = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```...``` fence (with or without a language tag)."""
    t = text.strip()
    if t.startswith("```") and t.endswith("```"):
        t = _FENCE_OPEN.sub("", t)
        t = _FENCE_CLOSE.sub("", t)
    return t.strip()


def _first_value(text: str, opener: str, kind: type) -> Any | None:
    if not text:
        return None
    t = strip_code_fences(text)
    try:
        value = json.loads(t)
    except ValueError:
        value = None
    if isinstance(value, kind):
        return value
    start = t.find(opener)
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(t, start)
        except ValueError:
            value = None
        if isinstance(value, kind):
            return value
        start = t.find(opener, start + 1)
    return None


def extract_json_array(text: str) -> list[Any] | None:
    """Return the response parsed as an array, or the first well-formed array inside it."""
    return _first_value(text, "[", list)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Object counterpart of :func:`extract_json_array`."""
    return _first_value(text, "{", dict)


__all__ = ["strip_code_fences", "extract_json_array", "extract_json_object"]
