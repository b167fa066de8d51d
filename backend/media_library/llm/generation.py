"""Text-generation client."""

from __future__ import annotations

from typing import Protocol

import requests

from media_library.core.errors import GenerationError
from media_library.core.logging import get_logger

logger = get_logger(__name__)


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class OllamaGenerationClient:
    """Blocking, non-streaming calls to an Ollama ``/api/generate`` endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(self, prompt: str) -> str:
        try:
            response = self.session.post(
                f"{self.base_url}/api/generate",
                json={"model": self.model, "prompt": prompt, "stream": False},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc
        if not response.ok:
            raise GenerationError(f"Generation API error: {response.status_code} - {response.text[:200]}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError("Generation response was not JSON") from exc
        text = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise GenerationError("Generation response missing 'response' text")
        logger.debug("Generated %s characters with %s", len(text), self.model)
        return text


__all__ = ["TextGenerator", "OllamaGenerationClient"]
