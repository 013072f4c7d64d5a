"""Error codes, failure classification and exceptions for bound operations.

Failures coming back from an underlying call are classified into three kinds:
- NETWORK: transport-level failures (socket, timeout, reset, DNS...)
- HTTP: explicit 429 / 5xx status
- TERMINAL: everything else

Only NETWORK and HTTP failures are retried by the resilient invoker.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Self

import httpx
from pydantic import ValidationError


class ErrorCode(StrEnum):
    """Standard error codes for operation failures."""
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_PARAMS = "INVALID_PARAMS"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    UNKNOWN = "UNKNOWN"


class FailureKind(StrEnum):
    """Retry classification of a failed call."""
    NETWORK = "network"
    HTTP = "http"
    TERMINAL = "terminal"

    @property
    def is_transient(self) -> bool:
        return self is not FailureKind.TERMINAL


# Substrings (lower-case) that mark an exception message as a transport failure
_NETWORK_PATTERNS: tuple[str, ...] = (
    "socket",
    "timeout",
    "aborted",
    "econnreset",
    "econnrefused",
    "network",
    "fetch failed",
)

_TRANSIENT_HTTPX: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError)


def _is_network_message(message: str) -> bool:
    haystack = message.lower()
    return any(p in haystack for p in _NETWORK_PATTERNS)


def error_status(error: object) -> int | None:
    """Numeric ``status`` exposed by an error value (mapping key or attribute)."""
    status = error.get("status") if isinstance(error, Mapping) else getattr(error, "status", None)
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def classify_failure(error: object) -> FailureKind:
    """Classify an error value for retry decisions."""
    if isinstance(error, BaseException):
        if isinstance(error, _TRANSIENT_HTTPX) or _is_network_message(str(error)):
            return FailureKind.NETWORK
    status = error_status(error)
    if status is not None and (status == 429 or status >= 500):
        return FailureKind.HTTP
    return FailureKind.TERMINAL


def code_for_error(error: object) -> ErrorCode:
    """Map an error value onto an ErrorCode."""
    if isinstance(error, SchemaError):
        return ErrorCode.SCHEMA_ERROR
    if isinstance(error, httpx.TimeoutException):
        return ErrorCode.TIMEOUT
    if classify_failure(error) is FailureKind.NETWORK:
        return ErrorCode.NETWORK_ERROR
    match error_status(error):
        case None:
            return ErrorCode.UNKNOWN
        case 429:
            return ErrorCode.RATE_LIMITED
        case 401 | 403:
            return ErrorCode.PERMISSION_DENIED
        case 404:
            return ErrorCode.NOT_FOUND
        case s if s >= 500:
            return ErrorCode.EXTERNAL_SERVICE_ERROR
        case s if s >= 400:
            return ErrorCode.INVALID_PARAMS
        case _:
            return ErrorCode.UNKNOWN


def describe_error(error: object) -> str:
    """Human-readable message for an error value.

    Strings are used as-is, exceptions contribute their own message and
    anything else is serialized as JSON. The result is never empty.
    """
    if isinstance(error, str):
        return error or json.dumps(error)
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, HttpErrorBody):
        return json.dumps(error.to_dict(), default=str)
    return json.dumps(error, default=str)


@dataclass(frozen=True, slots=True)
class HttpErrorBody:
    """Error payload for a non-2xx response."""

    status: int
    message: str
    body: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "message": self.message, "body": self.body}


class RestbridgeError(Exception):
    """Base class for restbridge exceptions."""


class SchemaError(RestbridgeError):
    """Malformed request shape or path template."""


class RetryExhaustedError(RestbridgeError):
    """Retry loop ran out of attempts without a final result."""


class OperationError(RestbridgeError):
    """The single failure raised by a bound operation.

    Attributes:
        operation_id: Identifier of the failing operation
        code: Machine-readable error classification
        recoverable: Whether a later call might succeed
        cause_value: Original error value returned by the underlying call
    """

    __slots__ = ("operation_id", "code", "recoverable", "cause_value")

    def __init__(
        self,
        operation_id: str,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        *,
        recoverable: bool = False,
        cause_value: object = None,
    ) -> None:
        super().__init__(message)
        self.operation_id = operation_id
        self.code = code
        self.recoverable = recoverable
        self.cause_value = cause_value

    @property
    def message(self) -> str:
        return str(self)

    @classmethod
    def from_error(cls, operation_id: str, error: object) -> Self:
        """Build from an error value returned by the underlying call."""
        return cls(
            operation_id,
            describe_error(error),
            code_for_error(error),
            recoverable=classify_failure(error).is_transient,
            cause_value=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation_id,
            "message": self.message,
            "code": self.code.value,
            "recoverable": self.recoverable,
        }


def format_validation_error(exc: ValidationError) -> str:
    """Compact one-line summary of a pydantic ValidationError."""
    parts = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
