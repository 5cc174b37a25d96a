"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values for every settings group
- Range validation on scheduler and passcode timings
- Custom validators (database URL, log level)
- Loading top-level settings from environment variables
- Settings caching and clearing
"""

import pytest
from pydantic import SecretStr, ValidationError

from shared_queue.config.settings import (
    DatabaseSettings,
    PasscodeSettings,
    PlaybackSettings,
    Settings,
    SpotifySettings,
    clear_settings_cache,
    get_settings,
)

# =============================================================================
# DatabaseSettings Tests
# =============================================================================


class TestDatabaseSettings:
    def test_create_with_defaults(self):
        db = DatabaseSettings()

        assert db.url == "sqlite:///data/shared_queue.db"
        assert db.busy_timeout_ms == 5000
        assert db.connection_timeout_s == 10

    def test_accepts_memory_database(self):
        assert DatabaseSettings(url=":memory:").url == ":memory:"

    def test_rejects_non_sqlite_url(self):
        """Should raise ValidationError for URLs the SQLite store cannot open."""
        with pytest.raises(ValidationError, match="Database URL must start with"):
            DatabaseSettings(url="postgresql://localhost/db")

    def test_accepts_alias(self):
        db = DatabaseSettings(database_url="sqlite:///other.db")
        assert db.url == "sqlite:///other.db"

    def test_busy_timeout_range(self):
        with pytest.raises(ValidationError, match="greater than or equal to 1000"):
            DatabaseSettings(busy_timeout_ms=10)

    def test_settings_are_frozen(self):
        db = DatabaseSettings()
        with pytest.raises(ValidationError):
            db.url = "sqlite:///changed.db"  # type: ignore[misc]


# =============================================================================
# SpotifySettings Tests
# =============================================================================


class TestSpotifySettings:
    def test_defaults_point_at_spotify(self):
        spotify = SpotifySettings()

        assert spotify.api_base_url == "https://api.spotify.com/v1"
        assert spotify.accounts_url == "https://accounts.spotify.com/api/token"
        assert spotify.redirect_uri == "http://localhost:8080/"
        assert spotify.client_secret.get_secret_value() == ""

    def test_secret_is_masked(self):
        spotify = SpotifySettings(client_id="cid", client_secret=SecretStr("hunter2"))

        assert "hunter2" not in repr(spotify)
        assert spotify.client_secret.get_secret_value() == "hunter2"

    def test_request_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            SpotifySettings(request_timeout_s=0.0)


# =============================================================================
# Playback and Passcode Settings Tests
# =============================================================================


class TestPlaybackSettings:
    def test_defaults(self):
        playback = PlaybackSettings()

        assert playback.guard_band_ms == 1000
        assert playback.near_end_threshold_ms == 5000
        assert playback.retry_backoff_ms == 5000
        assert playback.max_check_failures == 5

    @pytest.mark.parametrize(
        "field",
        ["guard_band_ms", "near_end_threshold_ms", "retry_backoff_ms"],
    )
    def test_negative_timings_rejected(self, field):
        with pytest.raises(ValidationError, match="greater than or equal to 0"):
            PlaybackSettings(**{field: -1})

    def test_at_least_one_check_failure_allowed(self):
        with pytest.raises(ValidationError):
            PlaybackSettings(max_check_failures=0)


class TestPasscodeSettings:
    def test_defaults(self):
        passcode = PasscodeSettings()

        assert passcode.length == 8
        assert passcode.max_attempts == 10

    def test_length_lower_bound(self):
        with pytest.raises(ValidationError):
            PasscodeSettings(length=3)


# =============================================================================
# Settings (Main Container) Tests
# =============================================================================


class TestSettings:
    def test_create_with_all_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert isinstance(settings.database, DatabaseSettings)
        assert isinstance(settings.spotify, SpotifySettings)
        assert isinstance(settings.playback, PlaybackSettings)
        assert isinstance(settings.passcode, PasscodeSettings)

    def test_load_from_environment_variables(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.log_level == "WARNING"

    def test_environment_validation(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")

        with pytest.raises(ValidationError, match="Input should be"):
            Settings(_env_file=None)

    def test_log_level_is_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_log_level_validation_invalid(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(_env_file=None)

    def test_nested_settings_passed_directly(self):
        settings = Settings(
            _env_file=None,
            playback=PlaybackSettings(guard_band_ms=250),
            passcode=PasscodeSettings(length=6),
        )

        assert settings.playback.guard_band_ms == 250
        assert settings.passcode.length == 6


# =============================================================================
# Settings Caching Tests
# =============================================================================


class TestSettingsCaching:
    def test_get_settings_returns_cached_instance(self, monkeypatch):
        clear_settings_cache()
        monkeypatch.setenv("ENVIRONMENT", "test")

        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch):
        clear_settings_cache()
        monkeypatch.setenv("ENVIRONMENT", "test")

        first = get_settings()
        clear_settings_cache()
        monkeypatch.setenv("ENVIRONMENT", "production")
        second = get_settings()

        assert first is not second
        assert first.environment == "test"
        assert second.environment == "production"
        clear_settings_cache()
