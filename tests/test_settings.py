"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values for each nested settings block
- Range validation
- Custom validators (log level, snowflake IDs, resolver command)
- Loading from environment variables
- Settings caching and clearing
"""

import sys

import pytest
from pydantic import SecretStr, ValidationError

from guild_audio_bot.config.settings import (
    AudioSettings,
    CleanupSettings,
    DiagnosticsSettings,
    DiscordSettings,
    ResolverSettings,
    Settings,
    TimeoutSettings,
    clear_settings_cache,
    get_settings,
)

# =============================================================================
# Nested settings
# =============================================================================


class TestDiscordSettings:
    """Unit tests for DiscordSettings configuration."""

    def test_defaults(self):
        discord = DiscordSettings()

        assert discord.token.get_secret_value() == ""
        assert discord.command_prefix == "!"
        assert discord.owner_ids == ()
        assert discord.sync_on_startup is False

    def test_token_alias(self):
        discord = DiscordSettings(bot_token=SecretStr("abc"))
        assert discord.token.get_secret_value() == "abc"

    def test_owner_ids_list_becomes_tuple(self):
        discord = DiscordSettings(owner_ids=[123456789012345678])
        assert discord.owner_ids == (123456789012345678,)

    @pytest.mark.parametrize("bad", [0, -1, 2**64])
    def test_invalid_snowflake(self, bad):
        with pytest.raises(ValidationError, match="snowflake"):
            DiscordSettings(owner_ids=(bad,))

    def test_prefix_length(self):
        with pytest.raises(ValidationError):
            DiscordSettings(command_prefix="")

    def test_immutable(self):
        discord = DiscordSettings()
        with pytest.raises(ValidationError):
            discord.command_prefix = "?"


class TestAudioSettings:
    def test_defaults(self):
        audio = AudioSettings()

        assert audio.default_volume == 100
        assert audio.volume_step == 10
        assert "-vn" in audio.ffmpeg_options["options"]

    @pytest.mark.parametrize("volume", [-1, 101])
    def test_volume_range(self, volume):
        with pytest.raises(ValidationError):
            AudioSettings(default_volume=volume)


class TestResolverSettings:
    def test_defaults_run_yt_dlp_module(self):
        resolver = ResolverSettings()

        assert resolver.command == (sys.executable, "-m", "yt_dlp")
        assert resolver.format == "bestaudio/best"
        assert resolver.timeout_seconds == 30.0

    def test_command_from_string(self):
        resolver = ResolverSettings(command="/usr/local/bin/yt-dlp --ignore-config")
        assert resolver.command == ("/usr/local/bin/yt-dlp", "--ignore-config")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ResolverSettings(timeout_seconds=0.0)


class TestTimeoutAndCleanupSettings:
    def test_timeout_defaults(self):
        timeouts = TimeoutSettings()
        assert timeouts.idle_seconds == 300.0
        assert timeouts.paused_seconds == 300.0

    def test_cleanup_defaults(self):
        cleanup = CleanupSettings()

        assert cleanup.error_retention_hours == 24
        assert cleanup.cleanup_interval_minutes == 30
        assert cleanup.reap_interval_seconds == 30

    def test_cleanup_interval_minimum(self):
        with pytest.raises(ValidationError):
            CleanupSettings(cleanup_interval_minutes=0)

    def test_diagnostics_defaults(self):
        diagnostics = DiagnosticsSettings()
        assert diagnostics.sample_size == 3
        assert diagnostics.status_log_interval_minutes == 10


# =============================================================================
# Settings (Main Container) Tests
# =============================================================================


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert isinstance(settings.resolver, ResolverSettings)
        assert isinstance(settings.timeouts, TimeoutSettings)

    def test_load_from_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("DISCORD__COMMAND_PREFIX", "?")

        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.log_level == "WARNING"
        assert settings.discord.command_prefix == "?"

    def test_logging_config_path(self, monkeypatch):
        monkeypatch.delenv("LOGGING_CONFIG_PATH", raising=False)
        assert Settings(_env_file=None).logging_config_path is None

        monkeypatch.setenv("LOGGING_CONFIG_PATH", "/etc/guild-audio-bot/logging.json")
        settings = Settings(_env_file=None)

        assert settings.logging_config_path == "/etc/guild-audio-bot/logging.json"

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(_env_file=None)

    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestSettingsCache:
    def test_cached_until_cleared(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        clear_settings_cache()

        first = get_settings()
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first
        clear_settings_cache()
