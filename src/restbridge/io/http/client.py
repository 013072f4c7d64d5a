"""Async REST transport producing ``Outcome`` values.

``RestClient`` turns a structured call (``{path, query, body}``) into one HTTP
request. Failures are returned, not raised, so the retry loop can classify
them:

- status >= 400 -> ``Outcome.fail(HttpErrorBody(...))``
- transport errors -> ``Outcome.fail(httpx.HTTPError)``
- missing path placeholder -> ``Outcome.fail(SchemaError)``

Example:
    >>> async with RestClient("https://shop.example.com", auth=BearerAuth(token="t")) as client:
    ...     get_brand = client.operation("GET", "/api/catalog/pvt/brand/{brandId}")
    ...     outcome = await get_brand({"path": {"brandId": 2000000}})
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Literal, Self
from urllib.parse import quote

import httpx
from pydantic_core import to_jsonable_python

from restbridge.foundation.errors import HttpErrorBody, Outcome, SchemaError

from .auth import AuthStrategy, NoAuth

if TYPE_CHECKING:
    from restbridge.binding import Invoker
    from restbridge.foundation.config import RestbridgeSettings
    from restbridge.schema import StructuredCall

logger = logging.getLogger("restbridge.http")

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def expand_path(template: str, path: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders with URL-quoted path values.

    Raises:
        SchemaError: A placeholder has no value
    """
    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in path or path[name] is None:
            raise SchemaError(f"Missing path parameter '{name}' for '{template}'")
        return quote(str(path[name]), safe="")
    return _PLACEHOLDER.sub(_sub, template)


def _decode(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(status: int, reason: str, body: Any) -> str:
    if isinstance(body, Mapping):
        for key in ("message", "Message", "error", "detail"):
            if isinstance(value := body.get(key), str) and value:
                return value
    return f"HTTP {status} {reason}".rstrip()


class RestClient:
    """Thin async client over ``httpx.AsyncClient``.

    Args:
        base_url: Root URL prepended to every path template
        auth: Header-based auth strategy
        timeout: Request timeout in seconds
        default_headers: Headers sent with every request
        client: Pre-built ``httpx.AsyncClient`` (not closed by ``aclose``)
    """

    __slots__ = ("_client", "_owns_client", "_auth", "_default_headers")

    def __init__(
        self,
        base_url: str = "",
        *,
        auth: AuthStrategy | None = None,
        timeout: float = 30.0,
        default_headers: Mapping[str, str] | None = None,
        verify: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._auth = auth or NoAuth()
        self._default_headers = dict(default_headers or {})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, verify=verify)

    @classmethod
    def from_settings(cls, settings: RestbridgeSettings) -> Self:
        """Build from the ``http`` and ``auth`` settings sections."""
        if not settings.http.base_url:
            raise ValueError("RESTBRIDGE_HTTP_BASE_URL is not configured")
        return cls(
            settings.http.base_url,
            auth=settings.auth.to_auth(),
            timeout=settings.http.timeout,
            default_headers={"User-Agent": settings.http.user_agent},
            verify=settings.http.verify_ssl,
        )

    @property
    def auth(self) -> AuthStrategy:
        return self._auth

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json", **self._default_headers}
        if has_body:
            headers.setdefault("Content-Type", "application/json")
        return self._auth.apply(headers)

    async def send(self, method: HttpMethod, path_template: str, call: StructuredCall) -> Outcome[Any]:
        """Send one request built from a structured call."""
        try:
            url = expand_path(path_template, call.get("path") or {})
        except SchemaError as e:
            return Outcome.fail(e)

        query = {k: to_jsonable_python(v) for k, v in (call.get("query") or {}).items() if v is not None}
        body = to_jsonable_python(call.get("body"))
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                url,
                params=query or None,
                json=body,
                headers=self._headers(body is not None),
            )
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            return Outcome.fail(e)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s %s -> %d (%.0fms)", method, url, response.status_code, elapsed_ms)

        payload = _decode(response)
        if response.status_code >= 400:
            return Outcome.fail(HttpErrorBody(
                status=response.status_code,
                message=_error_message(response.status_code, response.reason_phrase, payload),
                body=payload,
            ))
        return Outcome.ok(payload)

    def operation(self, method: HttpMethod, path_template: str) -> Invoker:
        """Per-operation invoker for ``Operation.invoke``."""
        method = method.upper()  # type: ignore[assignment]

        async def invoke(call: StructuredCall) -> Outcome[Any]:
            return await self.send(method, path_template, call)

        invoke.__qualname__ = f"{method} {path_template}"
        return invoke

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
