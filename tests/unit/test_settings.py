"""
Unit tests for the configuration settings module.

Tests cover:
- Default values
- Loading from SESSION_-prefixed environment variables
- Field validation
- Environment-specific store validation
- Settings caching
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config.settings import (
    ConfigurationError,
    Environment,
    SameSite,
    SessionSettings,
    StoreKind,
    clear_settings_cache,
    create_settings_for_environment,
    get_settings,
)


class TestSessionSettings:
    """Tests for the SessionSettings class."""

    def test_default_values_are_applied(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = SessionSettings(_env_file=None)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.store_type == StoreKind.MEMORY
        assert settings.ttl_seconds == 3600
        assert settings.rolling is False
        assert settings.id_byte_length == 32
        assert settings.max_id_attempts == 8
        assert settings.cookie_name == "session_id"
        assert settings.cookie_http_only is True
        assert settings.cookie_same_site == SameSite.LAX
        assert settings.cookie_path == "/"
        assert settings.shard_count == 16
        assert settings.sweep_interval_seconds is None
        assert settings.sweep_lottery == 0.0
        assert settings.backend_retry_attempts == 1
        assert settings.fail_open is False
        assert settings.log_level == "INFO"

    def test_values_from_environment(self):
        env = {
            "SESSION_STORE_TYPE": "cache",
            "SESSION_REDIS_URL": "redis://cache:6379/1",
            "SESSION_TTL_SECONDS": "900",
            "SESSION_ROLLING": "true",
            "SESSION_COOKIE_NAME": "sid",
            "SESSION_SWEEP_INTERVAL_SECONDS": "30",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = SessionSettings(_env_file=None)

        assert settings.store_type == StoreKind.CACHE
        assert settings.redis_url == "redis://cache:6379/1"
        assert settings.ttl_seconds == 900
        assert settings.rolling is True
        assert settings.cookie_name == "sid"
        assert settings.sweep_interval_seconds == 30.0

    def test_environment_from_unprefixed_variable(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "staging"}, clear=True):
            settings = SessionSettings(_env_file=None)

        assert settings.environment == Environment.STAGING

    def test_enum_values_are_case_insensitive(self):
        settings = SessionSettings(_env_file=None, store_type=" COOKIE ", cookie_same_site="Strict")

        assert settings.store_type == StoreKind.COOKIE
        assert settings.cookie_same_site == SameSite.STRICT

    def test_log_level_is_normalized(self):
        assert SessionSettings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            SessionSettings(_env_file=None, log_level="VERBOSE")

    @pytest.mark.parametrize("name", ["", "has space", "semi;colon", "quote\""])
    def test_invalid_cookie_name(self, name):
        with pytest.raises(ValidationError):
            SessionSettings(_env_file=None, cookie_name=name)

    @pytest.mark.parametrize("field,value", [
        ("ttl_seconds", 0),
        ("id_byte_length", 8),
        ("max_id_attempts", 0),
        ("shard_count", 0),
        ("sweep_lottery", 1.5),
        ("sweep_interval_seconds", 0),
        ("backend_retry_attempts", 0),
    ])
    def test_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            SessionSettings(_env_file=None, **{field: value})

    def test_unknown_store_type(self):
        with pytest.raises(ValidationError):
            SessionSettings(_env_file=None, store_type="filesystem")


class TestEnvironmentValidation:
    """Tests for store checks outside development."""

    def test_development_allows_missing_collaborators(self):
        settings = SessionSettings(_env_file=None, store_type="cache")

        assert settings.redis_url is None

    def test_production_cache_requires_redis_url(self):
        with pytest.raises(ValidationError, match="redis_url"):
            SessionSettings(_env_file=None, environment="production", store_type="cache")

    def test_production_cookie_requires_secret_key(self):
        with pytest.raises(ValidationError, match="cookie_secret_key"):
            SessionSettings(_env_file=None, environment="production", store_type="cookie")

    def test_same_site_none_requires_secure(self):
        with pytest.raises(ValidationError, match="cookie_secure"):
            SessionSettings(_env_file=None, environment="production", cookie_same_site="none")

    def test_valid_production_configuration(self):
        settings = SessionSettings(
            _env_file=None,
            environment="production",
            store_type="cache",
            redis_url="redis://cache:6379/0",
            cookie_secure=True,
            cookie_same_site="none",
        )

        assert settings.environment == Environment.PRODUCTION


@pytest.mark.usefixtures("clean_globals")
class TestCreateSettings:
    """Tests for create_settings_for_environment and get_settings."""

    def test_invalid_values_raise_configuration_error(self):
        with patch.dict(os.environ, {"SESSION_TTL_SECONDS": "0"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                create_settings_for_environment(Environment.DEVELOPMENT)

        assert "ttl_seconds" in exc_info.value.invalid_fields
        assert "ttl_seconds" in str(exc_info.value)

    def test_configuration_error_message(self):
        error = ConfigurationError(
            "Bad config",
            missing_fields=["redis_url"],
            invalid_fields={"ttl_seconds": "must be positive"},
        )

        message = str(error)
        assert "Bad config" in message
        assert "Missing required fields: redis_url" in message
        assert "ttl_seconds: must be positive" in message

    def test_get_settings_is_cached(self):
        with patch.dict(os.environ, {}, clear=True):
            first = get_settings()
            second = get_settings()

        assert first is second

    def test_clear_settings_cache(self):
        with patch.dict(os.environ, {}, clear=True):
            first = get_settings()
            clear_settings_cache()
            second = get_settings()

        assert first is not second
