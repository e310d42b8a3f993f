"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="!",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    owner_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("owner_ids", "owners")
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False

    @field_validator("owner_ids", "test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            if not 0 < snowflake < 2**64:
                raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
        return v


class AudioSettings(BaseModel):
    """Audio playback configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    default_volume: int = Field(default=100, ge=0, le=100)
    volume_step: int = Field(default=10, ge=1, le=100)
    ffmpeg_options: dict[str, str] = Field(
        default_factory=lambda: {
            "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
            "options": "-vn",
        }
    )


class ResolverSettings(BaseModel):
    """External metadata resolver (yt-dlp subprocess) configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    command: tuple[str, ...] = Field(
        default=(sys.executable, "-m", "yt_dlp"),
        validation_alias=AliasChoices("command", "ytdlp_command"),
    )
    extra_args: tuple[str, ...] = Field(default_factory=tuple)
    format: str = Field(
        default="bestaudio/best", validation_alias=AliasChoices("format", "ytdlp_format")
    )
    timeout_seconds: float = Field(default=30.0, gt=0, le=600)
    playlist_timeout_seconds: float = Field(default=45.0, gt=0, le=600)
    playlist_limit: int = Field(default=100, ge=1, le=5000)

    @field_validator("command", "extra_args", mode="before")
    @classmethod
    def validate_args(cls, v: tuple[str, ...] | list[str] | str) -> tuple[str, ...]:
        """Accept a JSON list or a whitespace-separated string."""
        if isinstance(v, str):
            v = v.split()
        return tuple(v)


class TimeoutSettings(BaseModel):
    """Inactivity teardown configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    idle_seconds: float = Field(default=300.0, gt=0)
    paused_seconds: float = Field(default=300.0, gt=0)


class CleanupSettings(BaseModel):
    """Periodic cleanup configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    error_retention_hours: int = Field(default=24, ge=1)
    cleanup_interval_minutes: int = Field(default=30, ge=1)
    reap_interval_seconds: int = Field(default=30, ge=1)


class DiagnosticsSettings(BaseModel):
    """Operational introspection configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    sample_size: int = Field(default=3, ge=0, le=50)
    status_log_interval_minutes: int = Field(default=10, ge=1)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL, LOGGING_CONFIG_PATH (top-level)
    - DISCORD__TOKEN, DISCORD__COMMAND_PREFIX, etc. (nested with "__")
    - RESOLVER__COMMAND, RESOLVER__TIMEOUT_SECONDS, RESOLVER__PLAYLIST_LIMIT
    - TIMEOUTS__IDLE_SECONDS, CLEANUP__ERROR_RETENTION_HOURS
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
    # Unset means the logging_config.json shipped with the project.
    logging_config_path: str | None = None

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)

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
