"""
Configuration management for the session layer.

This module provides centralized configuration loading and validation using
Pydantic settings. Values are read from environment variables prefixed with
``SESSION_`` or from ``.env`` files, with environment-specific files layered
on top of the base file.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreKind(str, Enum):
    """Closed set of session store variants, selected once at startup."""
    MEMORY = "memory"
    COOKIE = "cookie"
    DATABASE = "database"
    CACHE = "cache"


class SameSite(str, Enum):
    """Cookie SameSite attribute values."""
    STRICT = "strict"
    LAX = "lax"
    NONE = "none"


# RFC 6265 cookie-name token characters
_COOKIE_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def _detect_environment() -> Environment:
    """
    Detect the current environment from the ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    The base .env file is loaded first, then the environment-specific file
    overrides it.
    """
    return (".env", f".env.{environment.value}")


class SessionSettings(BaseSettings):
    """
    Session layer settings loaded from environment variables.

    Every field can be set through ``SESSION_<FIELD_NAME>``, e.g.
    ``SESSION_TTL_SECONDS=900`` or ``SESSION_STORE_TYPE=cache``.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        validation_alias=AliasChoices("session_environment", "environment"),
        description="Deployment environment (development, staging, production)"
    )

    # Store selection
    store_type: StoreKind = Field(
        default=StoreKind.MEMORY,
        description="Session store variant: memory, cookie, database or cache"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for the cache-backed store"
    )
    cookie_secret_key: Optional[str] = Field(
        default=None,
        description="Fernet key used to seal cookie-embedded sessions"
    )

    # Session lifetime and identity
    ttl_seconds: int = Field(
        default=3600,
        ge=1,
        le=31_536_000,
        description="Session time-to-live in seconds"
    )
    rolling: bool = Field(
        default=False,
        description="Refresh the expiry (and the cookie) on every request"
    )
    id_byte_length: int = Field(
        default=32,
        ge=16,
        le=128,
        description="Random bytes per session id (16 bytes = 128 bits minimum)"
    )
    max_id_attempts: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Collision retries before identity generation gives up"
    )

    # Cookie attributes, applied by the host
    cookie_name: str = Field(
        default="session_id",
        description="Name of the session cookie"
    )
    cookie_secure: bool = Field(default=False, description="Secure cookie flag")
    cookie_http_only: bool = Field(default=True, description="HttpOnly cookie flag")
    cookie_same_site: SameSite = Field(
        default=SameSite.LAX,
        description="SameSite cookie attribute (strict, lax, none)"
    )
    cookie_domain: Optional[str] = Field(default=None, description="Cookie domain")
    cookie_path: str = Field(default="/", description="Cookie path")

    # In-memory backend
    shard_count: int = Field(
        default=16,
        ge=1,
        le=1024,
        description="Lock shards in the in-memory session map"
    )
    sweep_interval_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Interval of the periodic expiry sweep; disabled when unset"
    )
    sweep_lottery: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Probability that a request triggers an expiry sweep"
    )

    # Failure policy
    backend_retry_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per external store call (1 disables retries)"
    )
    fail_open: bool = Field(
        default=False,
        description="Serve requests without a session when the store is down"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("store_type", "cookie_same_site", mode="before")
    @classmethod
    def normalize_enum_values(cls, v):
        """Accept enum values in any case and with surrounding whitespace."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("cookie_name")
    @classmethod
    def validate_cookie_name(cls, v: str) -> str:
        """Validate that cookie_name is a legal cookie token."""
        v = v.strip()
        if not v or not _COOKIE_NAME_PATTERN.match(v):
            raise ValueError("cookie_name must be a non-empty cookie token")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @model_validator(mode="after")
    def validate_store_config(self) -> "SessionSettings":
        """Validate the collaborators the selected store needs."""
        if self.environment == Environment.DEVELOPMENT:
            return self
        if self.store_type == StoreKind.CACHE and not self.redis_url:
            raise ValueError(
                "redis_url is required when store_type is 'cache' "
                "in non-development environments"
            )
        if self.store_type == StoreKind.COOKIE and not self.cookie_secret_key:
            raise ValueError(
                "cookie_secret_key is required when store_type is 'cookie' "
                "in non-development environments"
            )
        if self.cookie_same_site == SameSite.NONE and not self.cookie_secure:
            raise ValueError("cookie_same_site 'none' requires cookie_secure")
        return self


class ConfigurationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def create_settings_for_environment(environment: Optional[Environment] = None) -> SessionSettings:
    """
    Create SessionSettings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected
            from the ENVIRONMENT variable.

    Returns:
        SessionSettings: Validated settings for the environment.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = tuple(f for f in _get_env_files(environment) if Path(f).exists())

    try:
        return SessionSettings(_env_file=env_files or None)
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        if hasattr(e, "errors"):
            for error in e.errors():
                field_name = ".".join(str(loc) for loc in error.get("loc", [])) or "settings"
                if error.get("type") == "missing":
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name] = error.get("msg", str(error))

        raise ConfigurationError(
            f"Failed to load session configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[SessionSettings] = None


def get_settings() -> SessionSettings:
    """
    Get the session settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None
