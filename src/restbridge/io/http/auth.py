"""Authentication strategies for the REST transport.

Credentials are applied as request headers at send time and never appear in
an operation's flat parameter schema. Secrets are held as ``SecretStr`` and
masked in JSON serialization.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, SecretStr, Tag, field_serializer


class NoAuth(BaseModel):
    """No authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["none"] = "none"

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        return headers

    def __hash__(self) -> int:
        return hash(self.auth_type)


class BearerAuth(BaseModel):
    """Bearer token authentication (OAuth2, JWT)."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["bearer"] = "bearer"
    token: SecretStr = Field(..., description="Bearer token value")

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"
        return headers

    @field_serializer("token", when_used="json")
    def _mask_token(self, v: SecretStr) -> str:
        secret = v.get_secret_value()
        return f"{secret[:4]}...{secret[-4:]}" if len(secret) > 8 else "***"

    def __hash__(self) -> int:
        return hash((self.auth_type, self.token.get_secret_value()))


class ApiKeyAuth(BaseModel):
    """Single API key sent in a header."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        revalidate_instances="never",
    )
    auth_type: Literal["api_key"] = "api_key"
    key: SecretStr = Field(..., description="API key value")
    header_name: Annotated[str, Field(
        default="X-API-Key",
        pattern=r"^[A-Za-z][A-Za-z0-9-]*$",
        description="HTTP header name for the key",
    )]

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers[self.header_name] = self.key.get_secret_value()
        return headers

    @field_serializer("key", when_used="json")
    def _mask_key(self, v: SecretStr) -> str:
        secret = v.get_secret_value()
        return f"{secret[:4]}..." if len(secret) > 4 else "***"

    def __hash__(self) -> int:
        return hash((self.auth_type, self.header_name))


class HeaderAuth(BaseModel):
    """Several secret headers, e.g. an app key / app token pair.

    Example:
        >>> HeaderAuth(headers={"X-App-Key": "key", "X-App-Token": "token"})
    """

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["headers"] = "headers"
    headers: dict[str, SecretStr] = Field(default_factory=dict)

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers.update({k: v.get_secret_value() for k, v in self.headers.items()})
        return headers

    @field_serializer("headers", when_used="json")
    def _mask_headers(self, v: dict[str, SecretStr]) -> dict[str, str]:
        return {k: "***" for k in v}

    def __hash__(self) -> int:
        return hash((self.auth_type, tuple(sorted(self.headers))))


def _auth_discriminator(v: dict[str, object] | BaseModel) -> str:
    if isinstance(v, dict):
        return str(v.get("auth_type", "none"))
    return getattr(v, "auth_type", "none")


AuthStrategy = Annotated[
    Annotated[NoAuth, Tag("none")]
    | Annotated[BearerAuth, Tag("bearer")]
    | Annotated[ApiKeyAuth, Tag("api_key")]
    | Annotated[HeaderAuth, Tag("headers")],
    Discriminator(_auth_discriminator),
]
