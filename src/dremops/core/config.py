"""Settings for the Dremio connection and the query/selection behavior."""

from __future__ import annotations

from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from `DREMIO_*` environment variables (or `.env`)."""

    model_config = SettingsConfigDict(
        env_prefix="DREMIO_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Connection
    endpoint: str = ""
    pat: str = ""
    ssl_verify: bool = True
    request_timeout: float = 30.0

    # Query jobs
    poll_interval: float = 1.0
    max_poll_attempts: int = 60
    result_row_limit: int = 500

    # Selection
    container_depth: int = 1

    # Logging
    log_level: str = "WARNING"


def load_settings(**overrides: Any) -> Settings:
    """Load settings, applying non-None overrides (typically CLI options)."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
