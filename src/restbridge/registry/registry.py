"""Central registry of bound operations.

The registry provides:
- Operation registration and lookup by id
- Listings with flat input schemas for tool servers
- Invocation by id with the shared retry policy and context resolver
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from restbridge.binding import BoundOperation, ContextResolver, Operation, bind
from restbridge.foundation.errors import ErrorCode, OperationError
from restbridge.runtime.retry import RetryPolicy, Sleep

logger = logging.getLogger("restbridge.registry")


class OperationRegistry:
    """Registry for all exposed operations.

    Plain ``Operation`` values are bound on registration with the registry's
    default policy and context; already bound operations are stored as-is.

    Example:
        >>> registry = OperationRegistry(policy=RetryPolicy(max_retries=3))
        >>> registry.register(Operation(id="GET_BRAND", ...))
        >>> await registry.invoke("GET_BRAND", {"brandId": 2000000})
    """

    __slots__ = ("_operations", "_policy", "_context", "_sleep")

    def __init__(
        self,
        *,
        policy: RetryPolicy | None = None,
        context: ContextResolver | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._operations: dict[str, BoundOperation] = {}
        self._policy = policy
        self._context = context
        self._sleep = sleep

    def register(self, operation: Operation | BoundOperation) -> BoundOperation:
        """Register an operation, binding it if needed. Returns the bound form."""
        bound = operation if isinstance(operation, BoundOperation) else bind(
            operation, policy=self._policy, context=self._context, sleep=self._sleep,
        )
        if bound.id in self._operations:
            raise ValueError(f"Operation '{bound.id}' already registered. Use unregister() first.")
        self._operations[bound.id] = bound
        logger.debug("Registered %s (%d params)", bound.id, len(bound.schema))
        return bound

    def register_all(self, operations: Iterable[Operation | BoundOperation]) -> list[BoundOperation]:
        return [self.register(op) for op in operations]

    def unregister(self, operation_id: str) -> bool:
        """Remove an operation by id. Returns True if found."""
        return self._operations.pop(operation_id, None) is not None

    def get(self, operation_id: str) -> BoundOperation | None:
        return self._operations.get(operation_id)

    def __getitem__(self, operation_id: str) -> BoundOperation:
        """Get operation by id, raises KeyError if not found."""
        return self._operations[operation_id]

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[BoundOperation]:
        return iter(self._operations.values())

    def list_operations(self, *, category: str | None = None) -> list[dict[str, Any]]:
        """Tool listings: id, description, annotations and flat input schema."""
        return [
            {
                "name": op.id,
                "description": op.description,
                "annotations": dict(op.annotations),
                "category": op.operation.category,
                "inputSchema": op.json_schema(),
            }
            for op in self
            if category is None or op.operation.category == category
        ]

    async def invoke(self, operation_id: str, args: Mapping[str, Any] | None = None) -> Any:
        """Invoke a registered operation with flat arguments.

        Raises:
            OperationError: Unknown id (NOT_FOUND), invalid params or upstream failure
        """
        if (op := self._operations.get(operation_id)) is None:
            raise OperationError(operation_id, f"Operation '{operation_id}' not found", ErrorCode.NOT_FOUND)
        return await op(args)

    def clear(self) -> None:
        self._operations.clear()


_registry: OperationRegistry | None = None


def get_registry() -> OperationRegistry:
    """Get the global operation registry instance."""
    global _registry
    if _registry is None:
        _registry = OperationRegistry()
    return _registry


def set_registry(registry: OperationRegistry) -> None:
    """Replace the global registry."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None
