"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from knowledge_ingest.ingest.types import ChunkingConfig, QualityConfig

ENV_PREFIX = "KNGI_"
DEFAULT_CONFIG_PATH = Path("~/.config/knowledge-ingest/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("storage", "root"): "storage_root",
    ("storage", "extracted_text_ceiling"): "extracted_text_ceiling",
    ("extraction", "endpoint"): "extraction_endpoint",
    ("extraction", "api_key"): "extraction_api_key",
    ("extraction", "api_version"): "extraction_api_version",
    ("extraction", "model"): "extraction_model",
    ("extraction", "max_attempts"): "extraction_max_attempts",
    ("extraction", "poll_interval"): "extraction_poll_interval",
    ("extraction", "request_timeout"): "extraction_request_timeout",
    ("chunking", "target_words"): "chunk_target_words",
    ("chunking", "max_words"): "chunk_max_words",
    ("chunking", "overlap_words"): "chunk_overlap_words",
    ("quality", "min_chars_per_page"): "min_chars_per_page",
    ("quality", "absolute_min_chars"): "absolute_min_chars",
    ("quality", "min_coverage_ratio"): "min_coverage_ratio",
    ("summary", "preview_words"): "summary_preview_words",
    ("maintenance", "stale_after_minutes"): "stale_after_minutes",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".knowledge-ingest" / "ingest.db")
    storage_root: Path = Field(default=Path.home() / ".knowledge-ingest" / "objects")
    extracted_text_ceiling: int = Field(default=50_000, ge=1)

    extraction_endpoint: str = "http://127.0.0.1:5050"
    extraction_api_key: str | None = None
    extraction_api_version: str = "2024-11-30"
    extraction_model: str = "prebuilt-read"
    extraction_max_attempts: int = Field(default=60, ge=1)
    extraction_poll_interval: float = Field(default=1.0, ge=0.0)
    extraction_request_timeout: float = Field(default=30.0, gt=0.0)

    chunk_target_words: int = Field(default=800, ge=1)
    chunk_max_words: int = Field(default=1200, ge=1)
    chunk_overlap_words: int = Field(default=100, ge=0)

    min_chars_per_page: int = Field(default=50, ge=0)
    absolute_min_chars: int = Field(default=100, ge=0)
    min_coverage_ratio: float = Field(default=0.9, ge=0.0)

    summary_preview_words: int = Field(default=300, ge=1)
    stale_after_minutes: int = Field(default=10, ge=1)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "storage_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @model_validator(mode="after")
    def _check_chunk_budgets(self) -> "Settings":
        if self.chunk_target_words > self.chunk_max_words:
            raise ValueError("chunk_target_words must not exceed chunk_max_words")
        return self

    def chunking_config(self) -> ChunkingConfig:
        return ChunkingConfig(
            target_words=self.chunk_target_words,
            max_words=self.chunk_max_words,
            overlap_words=self.chunk_overlap_words,
        )

    def quality_config(self) -> QualityConfig:
        return QualityConfig(
            min_chars_per_page=self.min_chars_per_page,
            absolute_min_chars=self.absolute_min_chars,
            min_coverage_ratio=self.min_coverage_ratio,
        )

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with KNGI_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
