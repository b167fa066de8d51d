"""ChromaDB connection for the vector index."""

from __future__ import annotations

from urllib.parse import urlparse

import chromadb


def connect_chroma(url: str) -> chromadb.ClientAPI:
    """Open an HTTP client against a ChromaDB server at ``url``."""
    parsed = urlparse(url)
    host = parsed.hostname or "localhost"
    ssl = parsed.scheme == "https"
    port = parsed.port or (443 if ssl else 8000)
    return chromadb.HttpClient(host=host, port=port, ssl=ssl)


__all__ = ["connect_chroma"]
