# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: the cache backend
connection string, call timeouts, the CrossRef endpoint and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from medevidence.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Evidence cache ===
    # Empty REDIS_URL with the redis backend means the cache is permanently unavailable.
    redis_url: str = ""
    cache_backend: Literal["redis", "memory"] = "redis"
    cache_timeout_s: float = 2.0
    cache_health_retry_s: float = 30.0

    # === External fetch ===
    fetch_timeout_s: float = 15.0

    # === CrossRef metadata ===
    crossref_base_url: str = "https://api.crossref.org/works/"
    crossref_timeout_s: float = 10.0
    crossref_mailto: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "cache_timeout_s", "cache_health_retry_s", "fetch_timeout_s", "crossref_timeout_s"
    )
    @classmethod
    def validate_positive(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("log_rotation")
    @classmethod
    def validate_log_rotation(cls, v: str) -> str:  # noqa: N805
        parse_size(v)
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Reject contradictory cache configuration."""
        if self.cache_backend == "memory" and self.redis_url:
            raise ConfigurationError(
                "REDIS_URL is set but CACHE_BACKEND is memory; "
                "unset one of them"
            )
        return self

    # --- Helpers ---

    @property
    def cache_configured(self) -> bool:
        """True when a cache backend can be created at all."""
        return self.cache_backend == "memory" or bool(self.redis_url)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
