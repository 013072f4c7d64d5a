"""Environment-based configuration using pydantic-settings.

Example:
    >>> from restbridge.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_retries
    3

    # Or with environment variables:
    # RESTBRIDGE_RETRY_MAX_RETRIES=5
    # RESTBRIDGE_LOG_LEVEL=DEBUG
    # RESTBRIDGE_HTTP_BASE_URL=https://shop.example.com
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import (
    Field,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from restbridge.io.http import AuthStrategy


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="RESTBRIDGE_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RetrySettings(BaseSettings):
    """Retry budget and backoff timing for underlying calls."""

    model_config = SettingsConfigDict(env_prefix="RESTBRIDGE_RETRY_", extra="ignore")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    initial_delay: NonNegativeFloat = Field(default=0.5, description="Delay before the first retry, seconds")
    multiplier: PositiveFloat = Field(default=2.0, description="Exponential growth factor")
    jitter: NonNegativeFloat = Field(default=0.2, description="Upper bound of additive random jitter, seconds")
    max_delay: PositiveFloat | None = Field(default=None, description="Optional cap on the computed delay")


class HttpSettings(BaseSettings):
    """HTTP transport defaults."""

    model_config = SettingsConfigDict(env_prefix="RESTBRIDGE_HTTP_", extra="ignore")

    base_url: str | None = Field(default=None, description="Root URL of the upstream REST API")
    timeout: PositiveFloat = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = "restbridge/0.1"
    verify_ssl: bool = True


class CredentialSettings(BaseSettings):
    """Upstream credentials. Applied as request headers, never exposed as tool parameters."""

    model_config = SettingsConfigDict(env_prefix="RESTBRIDGE_AUTH_", extra="ignore")

    bearer_token: SecretStr | None = None
    api_key: SecretStr | None = None
    api_key_header: str = "X-API-Key"
    headers: dict[str, SecretStr] = Field(default_factory=dict, description="Extra secret headers")

    def to_auth(self) -> AuthStrategy:
        """Pick the auth strategy matching the configured credentials."""
        from restbridge.io.http import ApiKeyAuth, BearerAuth, HeaderAuth, NoAuth

        if self.headers:
            return HeaderAuth(headers=self.headers)
        if self.bearer_token is not None:
            return BearerAuth(token=self.bearer_token)
        if self.api_key is not None:
            return ApiKeyAuth(key=self.api_key, header_name=self.api_key_header)
        return NoAuth()


class ServerSettings(BaseSettings):
    """Tool server settings."""

    model_config = SettingsConfigDict(env_prefix="RESTBRIDGE_SERVER_", extra="ignore")

    name: str = "restbridge"
    transport: Literal["stdio", "sse", "streamable-http", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: PositiveInt = 8080


class RestbridgeSettings(BaseSettings):
    """Root settings, loaded from ``RESTBRIDGE_`` environment variables and ``.env``.

    Example environment variables:
        RESTBRIDGE_LOG_FORMAT=json
        RESTBRIDGE_RETRY_MAX_RETRIES=5
        RESTBRIDGE_AUTH_BEARER_TOKEN=...
    """

    model_config = SettingsConfigDict(
        env_prefix="RESTBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    auth: CredentialSettings = Field(default_factory=CredentialSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache(maxsize=1)
def get_settings() -> RestbridgeSettings:
    """Get the global settings instance (cached)."""
    return RestbridgeSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
