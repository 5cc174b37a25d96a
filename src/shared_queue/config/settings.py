"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.constants import PlaybackConstants, ProviderConstants
from ..domain.shared.messages import ErrorMessages


class DatabaseSettings(BaseModel):
    """Database configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    url: str = Field(
        default="sqlite:///data/shared_queue.db",
        validation_alias=AliasChoices("url", "database_url", "db_url"),
    )
    busy_timeout_ms: int = Field(
        default=5000,
        ge=1000,
        le=30000,
        validation_alias=AliasChoices("busy_timeout_ms", "busy_timeout"),
    )
    connection_timeout_s: int = Field(
        default=10,
        ge=1,
        le=60,
        validation_alias=AliasChoices("connection_timeout_s", "connection_timeout"),
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith("sqlite://") and v != ":memory:":
            raise ValueError(ErrorMessages.INVALID_DATABASE_URL)
        return v


class SpotifySettings(BaseModel):
    """Streaming provider credentials and endpoints."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    client_id: str = Field(
        default="", validation_alias=AliasChoices("client_id", "spotify_client_id")
    )
    client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("client_secret", "spotify_client_secret"),
    )
    redirect_uri: str = Field(
        default="http://localhost:8080/",
        validation_alias=AliasChoices("redirect_uri", "callback_url"),
    )
    api_base_url: str = ProviderConstants.API_BASE_URL
    accounts_url: str = ProviderConstants.ACCOUNTS_URL
    request_timeout_s: float = Field(default=10.0, gt=0, le=60)


class PlaybackSettings(BaseModel):
    """Timings of the track-end scheduler."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    guard_band_ms: int = Field(default=PlaybackConstants.GUARD_BAND_MS, ge=0, le=60_000)
    near_end_threshold_ms: int = Field(
        default=PlaybackConstants.NEAR_END_THRESHOLD_MS, ge=0, le=60_000
    )
    retry_backoff_ms: int = Field(default=PlaybackConstants.RETRY_BACKOFF_MS, ge=0, le=300_000)
    max_check_failures: int = Field(default=PlaybackConstants.MAX_CHECK_FAILURES, ge=1, le=100)


class PasscodeSettings(BaseModel):
    """Passcode generation configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    length: int = Field(default=8, ge=4, le=32)
    max_attempts: int = Field(default=10, ge=1, le=1000)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DATABASE__URL, SPOTIFY__CLIENT_ID, PLAYBACK__GUARD_BAND_MS, etc. (nested with "__")
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    passcode: PasscodeSettings = Field(default_factory=PasscodeSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
