"""Tests for configuration management.

Tests cover:
- Defaults and loading from environment variables
- Validation of invalid configuration
- Production environment constraints
- Settings singleton behavior
"""

import os
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from epets.core.config import (
    ConfigValidationError,
    Environment,
    Settings,
    validate_settings,
)
from epets.core.settings import clear_settings_cache, get_settings


@pytest.fixture
def production_env() -> dict[str, str]:
    return {
        "EPETS_ENVIRONMENT": "production",
        "EPETS_AUTH__COOKIE_SECURE": "true",
        "EPETS_AUTH__SECRET_KEY": "a-long-random-production-secret",
    }


class TestDefaults:
    def test_defaults(self):
        settings = Settings()

        assert settings.environment is Environment.DEV
        assert settings.moderate_url == "https://moderate.petition.parliament.uk"
        assert settings.time_zone == "Europe/London"
        assert settings.archive.per_page == 50
        assert settings.auth.session_cookie_name == "epets_admin_session"
        assert settings.is_development
        assert not settings.is_production

    def test_tzinfo(self):
        assert Settings().tzinfo == ZoneInfo("Europe/London")


class TestAdminUrl:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("", "https://moderate.example.test/admin"),
            ("login", "https://moderate.example.test/admin/login"),
            ("/archived/petitions/1/", "https://moderate.example.test/admin/archived/petitions/1"),
        ],
    )
    def test_absolute_urls(self, path, expected):
        settings = Settings(moderate_url="https://moderate.example.test/")

        assert settings.admin_url(path) == expected


class TestEnvironment:
    def test_nested_settings_from_env(self):
        env = {
            "EPETS_MODERATE_URL": "http://localhost:3000",
            "EPETS_ARCHIVE__PER_PAGE": "25",
            "EPETS_AUTH__SESSION_DURATION_HOURS": "2",
            "EPETS_DATABASE__URL": "postgresql://u:p@db:5432/epets",
        }
        with patch.dict(os.environ, env, clear=False):
            settings = Settings()

        assert settings.moderate_url == "http://localhost:3000"
        assert settings.archive.per_page == 25
        assert settings.auth.session_duration_hours == 2
        assert "db:5432" in str(settings.database.url)

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"


class TestValidation:
    def test_unknown_time_zone(self):
        with pytest.raises(ValidationError, match="Unknown time zone"):
            Settings(time_zone="Mars/Olympus_Mons")

    def test_relative_moderate_url(self):
        with pytest.raises(ValidationError, match="absolute"):
            Settings(moderate_url="moderate.petition.parliament.uk")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_per_page_bounds(self):
        with patch.dict(os.environ, {"EPETS_ARCHIVE__PER_PAGE": "0"}, clear=False):
            with pytest.raises(ValidationError):
                Settings()

    def test_chunk_rows_above_batch_size(self):
        env = {"EPETS_ARCHIVE__EXPORT_BATCH_SIZE": "10", "EPETS_ARCHIVE__EXPORT_CHUNK_ROWS": "20"}
        with patch.dict(os.environ, env, clear=False):
            settings = Settings()

        with pytest.raises(ConfigValidationError) as exc_info:
            validate_settings(settings)
        assert exc_info.value.field == "archive.export_chunk_rows"


class TestProductionConstraints:
    def test_valid_production(self, production_env):
        with patch.dict(os.environ, production_env, clear=False):
            settings = Settings()

        assert settings.is_production

    def test_debug_not_allowed(self, production_env):
        with patch.dict(os.environ, {**production_env, "EPETS_DEBUG": "true"}, clear=False):
            with pytest.raises(ValidationError, match="Debug mode"):
                Settings()

    def test_secure_cookies_required(self, production_env):
        env = {**production_env, "EPETS_AUTH__COOKIE_SECURE": "false"}
        with patch.dict(os.environ, env, clear=False):
            with pytest.raises(ValidationError, match="secure cookies"):
                Settings()

    def test_secret_key_required(self, production_env):
        env = {k: v for k, v in production_env.items() if k != "EPETS_AUTH__SECRET_KEY"}
        with patch.dict(os.environ, env, clear=False):
            with pytest.raises(ValidationError, match="SECRET_KEY"):
                Settings()


class TestSettingsSingleton:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear(self):
        first = get_settings()
        clear_settings_cache()

        assert get_settings() is not first

    def test_invalid_environment_exits(self):
        with patch.dict(os.environ, {"EPETS_TIME_ZONE": "Nowhere/Special"}, clear=False):
            with pytest.raises(SystemExit):
                get_settings()

