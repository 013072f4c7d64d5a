"""Restbridge - expose REST API operations as flat, retrying tool calls.

Each REST operation is described by a four-part request shape (path, query,
body, headers). Restbridge flattens the shape into one parameter schema that
tool-calling agents can fill in, rebuilds the structured request on every
call, and runs it under a bounded exponential-backoff retry policy.

Quick Start:
    >>> from restbridge import FieldSpec, ObjectShape, Operation, RequestShape, RestClient, bind
    >>>
    >>> client = RestClient("https://shop.example.com", auth=BearerAuth(token="..."))
    >>> get_brand = bind(Operation(
    ...     id="GET_BRAND",
    ...     description="Get brand details by ID.",
    ...     shape=RequestShape(path=ObjectShape({"brandId": FieldSpec(int)})),
    ...     invoke=client.operation("GET", "/api/catalog/pvt/brand/{brandId}"),
    ... ))
    >>> await get_brand({"brandId": 2000000})

Shapes from TypedDicts:
    >>> class GetBrandRequest(TypedDict):
    ...     path: BrandPath
    ...     query: NotRequired[BrandQuery]
    ...     body: Never
    ...     headers: Never
    >>> shape = RequestShape.from_typed_dict(GetBrandRequest)

MCP Server:
    >>> from restbridge.ext.mcp import serve_mcp
    >>> registry = get_registry()
    >>> registry.register_all(operations)
    >>> serve_mcp(registry, transport="stdio")
"""

from __future__ import annotations

__version__ = "0.1.0"

# Schema
from .schema import (
    ABSENT,
    Absent,
    FieldSpec,
    FlatSchema,
    ObjectShape,
    OpaqueShape,
    OptionalPart,
    RequestShape,
    StructuredCall,
    flatten,
    optional,
    unflatten,
)

# Errors
from .foundation.errors import (
    ErrorCode,
    FailureKind,
    HttpErrorBody,
    OperationError,
    Outcome,
    RestbridgeError,
    RetryExhaustedError,
    SchemaError,
    classify_failure,
)

# Config
from .foundation.config import RestbridgeSettings, get_settings

# Retry
from .runtime.retry import NO_RETRY, ExponentialBackoff, RetryPolicy, invoke_with_retry, invoke_with_retry_sync

# Logging
from .runtime.observability import configure_logging

# Binding & registry
from .binding import BoundOperation, Operation, bind
from .registry import OperationRegistry, get_registry, reset_registry, set_registry

# Transport
from .io.http import ApiKeyAuth, BearerAuth, HeaderAuth, NoAuth, RestClient

__all__ = [
    "__version__",
    # Schema
    "RequestShape", "FieldSpec", "Absent", "ABSENT", "ObjectShape", "OpaqueShape", "OptionalPart",
    "optional", "FlatSchema", "StructuredCall", "flatten", "unflatten",
    # Errors
    "ErrorCode", "FailureKind", "classify_failure", "Outcome", "HttpErrorBody",
    "RestbridgeError", "SchemaError", "OperationError", "RetryExhaustedError",
    # Config
    "RestbridgeSettings", "get_settings",
    # Retry
    "RetryPolicy", "ExponentialBackoff", "NO_RETRY", "invoke_with_retry", "invoke_with_retry_sync",
    # Logging
    "configure_logging",
    # Binding & registry
    "Operation", "BoundOperation", "bind",
    "OperationRegistry", "get_registry", "set_registry", "reset_registry",
    # Transport
    "RestClient", "NoAuth", "BearerAuth", "ApiKeyAuth", "HeaderAuth",
]
