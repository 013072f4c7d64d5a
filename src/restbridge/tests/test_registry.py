"""Tests for the operation registry."""

from __future__ import annotations

from typing import Any

import pytest

from restbridge.binding import Operation, bind
from restbridge.foundation.errors import ErrorCode, OperationError, Outcome
from restbridge.registry import OperationRegistry, get_registry, reset_registry, set_registry
from restbridge.runtime.retry import NO_RETRY
from restbridge.schema import FieldSpec, ObjectShape, RequestShape


def make_operation(op_id: str, result: Any = None, *, category: str = "catalog") -> Operation:
    async def invoke(call: Any) -> Outcome[Any]:
        return result if isinstance(result, Outcome) else Outcome.ok({"call": call})

    return Operation(
        id=op_id,
        description=f"Operation {op_id} for tests.",
        shape=RequestShape(path=ObjectShape({"id": FieldSpec(int)})),
        invoke=invoke,
        annotations={"readOnlyHint": True},
        category=category,
    )


def test_register_binds_and_looks_up() -> None:
    registry = OperationRegistry()
    bound = registry.register(make_operation("GET_BRAND"))

    assert "GET_BRAND" in registry
    assert registry["GET_BRAND"] is bound
    assert registry.get("GET_BRAND") is bound
    assert registry.get("MISSING") is None
    assert len(registry) == 1
    assert list(registry) == [bound]


def test_register_accepts_bound_operations() -> None:
    registry = OperationRegistry()
    bound = bind(make_operation("GET_SKU"))
    assert registry.register(bound) is bound


def test_duplicate_ids_rejected() -> None:
    registry = OperationRegistry()
    registry.register(make_operation("GET_BRAND"))
    with pytest.raises(ValueError, match="already registered"):
        registry.register(make_operation("GET_BRAND"))


def test_unregister() -> None:
    registry = OperationRegistry()
    registry.register_all([make_operation("A"), make_operation("B")])
    assert registry.unregister("A")
    assert not registry.unregister("A")
    assert [op.id for op in registry] == ["B"]


def test_list_operations() -> None:
    registry = OperationRegistry()
    registry.register_all([make_operation("A"), make_operation("B", category="orders")])

    listing = registry.list_operations()
    assert [entry["name"] for entry in listing] == ["A", "B"]
    assert listing[0]["annotations"] == {"readOnlyHint": True}
    assert listing[0]["inputSchema"]["required"] == ["id"]
    assert [entry["name"] for entry in registry.list_operations(category="orders")] == ["B"]


@pytest.mark.asyncio
async def test_invoke_by_id() -> None:
    registry = OperationRegistry()
    registry.register(make_operation("GET_BRAND"))
    assert await registry.invoke("GET_BRAND", {"id": 4}) == {"call": {"path": {"id": 4}}}


@pytest.mark.asyncio
async def test_invoke_unknown_id() -> None:
    with pytest.raises(OperationError) as exc_info:
        await OperationRegistry().invoke("NOPE", {})
    assert exc_info.value.code is ErrorCode.NOT_FOUND
    assert exc_info.value.cause_value is None


@pytest.mark.asyncio
async def test_registry_policy_and_context_applied(fake_sleep: Any) -> None:
    seen: list[Any] = []

    async def invoke(call: Any) -> Outcome[Any]:
        seen.append(call)
        return Outcome.fail({"status": 503})

    registry = OperationRegistry(policy=NO_RETRY, context=lambda: {"client": "c"}, sleep=fake_sleep)
    registry.register(Operation(
        id="FLAKY", description="Always unavailable.",
        shape=RequestShape(), invoke=invoke,
    ))

    with pytest.raises(OperationError):
        await registry.invoke("FLAKY")
    assert seen == [{"client": "c"}]


def test_global_registry_helpers() -> None:
    first = get_registry()
    assert get_registry() is first

    replacement = OperationRegistry()
    set_registry(replacement)
    assert get_registry() is replacement

    replacement.register(make_operation("A"))
    reset_registry()
    assert len(replacement) == 0
    assert get_registry() is not replacement
