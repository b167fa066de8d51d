"""ID helpers."""

from __future__ import annotations

import uuid

ITEM_PREFIX = "itm"


def new_id(prefix: str | None = ITEM_PREFIX) -> str:
    """Generate an opaque UUID4-based identifier, prefixed unless ``prefix`` is None."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base
