"""Bind a REST operation into one flat callable.

An ``Operation`` pairs a request shape with an invocation target. ``bind``
flattens the shape once and returns a ``BoundOperation`` which, per call:

1. validates the flat arguments against the flat schema
2. rebuilds the structured ``{path, query, body}`` call
3. merges per-call context (client, credentials) resolved outside the schema
4. runs the invocation target under the retry policy
5. returns the payload (sequences wrapped as ``{"items": [...]}``) or raises
   an ``OperationError``

Example:
    >>> op = Operation(
    ...     id="GET_BRAND",
    ...     description="Get brand details by ID.",
    ...     shape=RequestShape(path=ObjectShape({"brandId": FieldSpec(int)})),
    ...     invoke=client.operation("GET", "/api/catalog/pvt/brand/{brandId}"),
    ... )
    >>> get_brand = bind(op)
    >>> await get_brand({"brandId": 2000000})
    {'Id': 2000000, 'Name': 'Acme', ...}
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from restbridge.foundation.errors import ErrorCode, OperationError, Outcome, format_validation_error
from restbridge.runtime.retry import RetryPolicy, Sleep, invoke_with_retry
from restbridge.schema import FlatSchema, RequestShape, StructuredCall, flatten, unflatten

logger = logging.getLogger("restbridge.binding")

Invoker = Callable[[StructuredCall], "Outcome[Any] | Awaitable[Outcome[Any]] | Mapping[str, Any]"]
ContextResolver = Callable[[], "Mapping[str, Any] | Awaitable[Mapping[str, Any]]"]

_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.\-]*$")


@dataclass(frozen=True, slots=True)
class Operation:
    """One external operation exposed as a tool.

    Attributes:
        id: Stable tool identifier (e.g. "VTEX_GET_BRAND")
        description: What the operation does, shown to the model
        shape: Four-part request shape
        invoke: Adapter calling the underlying endpoint with a structured call
        annotations: Tool hints such as ``{"readOnlyHint": True}``
        category: Grouping for listings
    """

    id: str
    description: str
    shape: RequestShape
    invoke: Invoker
    annotations: Mapping[str, Any] = field(default_factory=dict)
    category: str = "general"

    def __post_init__(self) -> None:
        if not _ID_PATTERN.match(self.id):
            raise ValueError(f"Invalid operation id '{self.id}'")
        if not self.description.strip():
            raise ValueError(f"Operation '{self.id}' needs a description")


def _normalize(data: Any) -> Any:
    return {"items": list(data)} if isinstance(data, list | tuple) else data


class BoundOperation:
    """Flat callable produced by ``bind``."""

    __slots__ = ("_operation", "_schema", "_policy", "_context", "_sleep")

    def __init__(
        self,
        operation: Operation,
        *,
        policy: RetryPolicy | None = None,
        context: ContextResolver | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._operation = operation
        self._schema = flatten(operation.shape, name=f"{re.sub(r'[^A-Za-z0-9_]', '_', operation.id)}_Params")
        self._policy = policy
        self._context = context
        self._sleep = sleep

    @property
    def id(self) -> str:
        return self._operation.id

    @property
    def description(self) -> str:
        return self._operation.description

    @property
    def annotations(self) -> Mapping[str, Any]:
        return self._operation.annotations

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def schema(self) -> FlatSchema:
        return self._schema

    def json_schema(self) -> dict[str, Any]:
        return self._schema.json_schema()

    def structure(self, args: Mapping[str, Any] | None = None) -> StructuredCall:
        """Validate flat arguments and rebuild the structured call."""
        try:
            flat = self._schema.validate(args or {})
        except ValidationError as e:
            raise OperationError(
                self.id, f"Invalid parameters: {format_validation_error(e)}", ErrorCode.INVALID_PARAMS,
            ) from e
        return unflatten(flat, self._operation.shape)

    async def _resolve_context(self) -> Mapping[str, Any]:
        if self._context is None:
            return {}
        resolved = self._context()
        return await resolved if inspect.isawaitable(resolved) else resolved

    async def __call__(self, args: Mapping[str, Any] | None = None) -> Any:
        call = self.structure(args)
        request: dict[str, Any] = {**(await self._resolve_context()), **call}
        logger.debug("[%s] Invoking with parts: %s", self.id, ", ".join(call) or "none")

        async def attempt() -> Any:
            try:
                result = self._operation.invoke(request)  # type: ignore[arg-type]
                return await result if inspect.isawaitable(result) else result
            except Exception as exc:  # raised failures are classified like returned ones
                return Outcome.fail(exc)

        outcome = await invoke_with_retry(attempt, self._policy, sleep=self._sleep, operation=self.id)
        if outcome.is_err():
            error = OperationError.from_error(self.id, outcome.error)
            logger.warning("[%s] Failed (%s): %s", self.id, error.code.value, error.message)
            raise error

        logger.debug("[%s] OK", self.id)
        return _normalize(outcome.data)

    async def call(self, **kwargs: Any) -> Any:
        """Keyword-argument form of ``__call__``."""
        return await self(kwargs)

    def __repr__(self) -> str:
        return f"BoundOperation({self.id!r}, params={list(self._schema)})"


def bind(
    operation: Operation,
    *,
    policy: RetryPolicy | None = None,
    context: ContextResolver | None = None,
    sleep: Sleep = asyncio.sleep,
) -> BoundOperation:
    """Flatten ``operation.shape`` once and return the flat callable."""
    return BoundOperation(operation, policy=policy, context=context, sleep=sleep)
