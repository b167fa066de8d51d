"""Service settings: defaults, then a YAML file, then MEDLIB_* environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "MEDLIB_"
DEFAULT_CONFIG_PATH = Path("~/.config/media-library/config.yaml")

# YAML section path -> Settings field.
_YAML_FIELDS: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("index", "backend"): "vector_backend",
    ("index", "chroma_url"): "chroma_url",
    ("index", "collection"): "collection_name",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "url"): "ollama_url",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "timeout"): "embedding_timeout",
    ("embeddings", "default_dim"): "default_embedding_dim",
    ("embeddings", "probe_timeout"): "probe_timeout",
    ("generation", "model"): "generation_model",
    ("generation", "timeout"): "generation_timeout",
    ("retrieval", "relevance_threshold"): "relevance_threshold",
    ("retrieval", "overfetch"): "overfetch",
    ("retrieval", "max_results"): "max_results",
    ("sync", "mode"): "sync_mode",
    ("sync", "queue_size"): "sync_queue_size",
}


class Settings(BaseModel):
    """Everything the service reads at startup. Unknown keys are ignored."""

    db_path: Path = Field(default=Path.home() / ".media-library" / "library.db")
    vector_backend: Literal["memory", "chroma"] = "memory"
    chroma_url: str = "http://localhost:8000"
    collection_name: str = "media_library"
    embedding_backend: Literal["ollama", "hashed"] = "ollama"
    ollama_url: str = "http://localhost:11434"
    embedding_model: str = "embeddinggemma:300m"
    embedding_timeout: float = Field(default=30.0, gt=0)
    default_embedding_dim: int = Field(default=768, ge=1)
    probe_timeout: float = Field(default=5.0, gt=0)
    generation_model: str = "gemma3:4b"
    generation_timeout: float = Field(default=60.0, gt=0)
    relevance_threshold: float = Field(default=0.7, ge=0)
    overfetch: int = Field(default=10, ge=1)
    max_results: int = Field(default=3, ge=1)
    sync_mode: Literal["queue", "inline"] = "queue"
    sync_queue_size: int = Field(default=256, ge=1)

    model_config = {"extra": "ignore"}

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if not isinstance(value, (str, Path)):
            raise TypeError("db_path must be a path or string")
        return Path(value).expanduser()

    @field_validator("ollama_url", "chroma_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        values: dict[str, Any] = {}
        config_path = path.expanduser() if path is not None else _default_config_path()
        if config_path is not None and config_path.is_file():
            values.update(_read_yaml(config_path))
        values.update(_env_values())
        return cls(**values)


def _default_config_path() -> Path | None:
    override = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _read_yaml(config_path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{config_path} must contain a mapping")
    values = {key: value for key, value in raw.items() if key in Settings.model_fields}
    for section_path, field_name in _YAML_FIELDS.items():
        node: Any = raw
        for part in section_path:
            node = node.get(part) if isinstance(node, Mapping) else None
        if node is not None:
            values[field_name] = node
    return values


def _env_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for field_name in Settings.model_fields:
        env_value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if env_value is not None:
            values[field_name] = env_value
    return values


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
