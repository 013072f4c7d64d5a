"""REST transport: httpx client and header auth strategies."""

from .auth import ApiKeyAuth, AuthStrategy, BearerAuth, HeaderAuth, NoAuth
from .client import HttpMethod, RestClient, expand_path

__all__ = [
    "RestClient", "HttpMethod", "expand_path",
    "AuthStrategy", "NoAuth", "BearerAuth", "ApiKeyAuth", "HeaderAuth",
]
