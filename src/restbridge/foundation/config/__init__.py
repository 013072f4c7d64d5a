"""Configuration management using pydantic-settings."""

from .settings import (
    CredentialSettings,
    HttpSettings,
    LoggingSettings,
    RestbridgeSettings,
    RetrySettings,
    ServerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "CredentialSettings",
    "HttpSettings",
    "LoggingSettings",
    "RestbridgeSettings",
    "RetrySettings",
    "ServerSettings",
    "clear_settings_cache",
    "get_settings",
]
