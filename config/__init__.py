# Configuration module for the session layer
from .settings import (
    ConfigurationError,
    Environment,
    SameSite,
    SessionSettings,
    StoreKind,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ConfigurationError",
    "Environment",
    "SameSite",
    "SessionSettings",
    "StoreKind",
    "clear_settings_cache",
    "get_settings",
]
