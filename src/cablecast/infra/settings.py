"""
Application settings for CableCast.

This module defines all configuration settings for CableCast using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Interstitials
    enable_commercials: bool = Field(default=True, alias="CABLECAST_ENABLE_COMMERCIALS")
    commercial_probability: float = Field(
        default=0.3, ge=0.0, le=1.0, alias="CABLECAST_COMMERCIAL_PROBABILITY"
    )
    enable_pre_roll: bool = Field(default=True, alias="CABLECAST_ENABLE_PRE_ROLL")
    commercial_library_path: str | None = Field(
        default=None, alias="CABLECAST_COMMERCIAL_LIBRARY_PATH"
    )
    pre_roll_library_path: str | None = Field(default=None, alias="CABLECAST_PRE_ROLL_LIBRARY_PATH")

    # Content selection
    min_content_duration_minutes: int = Field(default=5, ge=0, alias="CABLECAST_MIN_CONTENT_DURATION")
    max_content_duration_minutes: int = Field(
        default=180, ge=0, alias="CABLECAST_MAX_CONTENT_DURATION"
    )
    use_scheduled_programming: bool = Field(
        default=True, alias="CABLECAST_USE_SCHEDULED_PROGRAMMING"
    )

    # Rolling maintenance
    channel_buffer_minutes: int = Field(default=60, ge=0, alias="CABLECAST_CHANNEL_BUFFER_MINUTES")
    lookahead_hours: int = Field(default=24, gt=0, alias="CABLECAST_LOOKAHEAD_HOURS")
    retention_hours: int = Field(default=1, ge=0, alias="CABLECAST_RETENTION_HOURS")
    maintenance_interval_seconds: int = Field(
        default=1800, gt=0, alias="CABLECAST_MAINTENANCE_INTERVAL_SECONDS"
    )

    # Collaborators
    channels_file: str = Field(default="cablecast_channels.json", alias="CABLECAST_CHANNELS_FILE")
    library_catalog: str | None = Field(default=None, alias="CABLECAST_LIBRARY_CATALOG")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("CABLECAST_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
