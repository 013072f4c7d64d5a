"""Tests for binding operations into flat callables."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from restbridge.binding import Operation, bind
from restbridge.foundation.errors import ErrorCode, OperationError, Outcome
from restbridge.runtime.retry import NO_RETRY, ConstantBackoff, RetryPolicy
from restbridge.schema import FieldSpec, ObjectShape, OpaqueShape, OptionalPart, RequestShape

BRAND_SHAPE = RequestShape(
    path=ObjectShape({"brandId": FieldSpec(int)}),
    query=OptionalPart(ObjectShape({"fields": FieldSpec(str)})),
    headers=ObjectShape({"Accept": FieldSpec(str)}),
)


class Recorder:
    """Invoker recording structured calls and replaying scripted results."""

    def __init__(self, *results: Any) -> None:
        self.results = list(results) or [Outcome.ok({"ok": True})]
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, call: dict[str, Any]) -> Any:
        self.calls.append(call)
        result = self.results[min(len(self.calls), len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


def brand_operation(invoke: Any, **kwargs: Any) -> Operation:
    return Operation(
        id="VTEX_GET_BRAND",
        description="Get brand details by brand ID.",
        shape=BRAND_SHAPE,
        invoke=invoke,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_call_rebuilds_structured_request(fake_sleep: Any) -> None:
    invoke = Recorder(Outcome.ok({"Id": 7, "Name": "Acme"}))
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)

    result = await get_brand({"brandId": 7, "fields": None, "Accept": "text/html", "extra": 1})

    assert result == {"Id": 7, "Name": "Acme"}
    assert invoke.calls == [{"path": {"brandId": 7}}]


@pytest.mark.asyncio
async def test_keyword_call(fake_sleep: Any) -> None:
    invoke = Recorder()
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)
    await get_brand.call(brandId=3, fields="Id,Name")
    assert invoke.calls == [{"path": {"brandId": 3}, "query": {"fields": "Id,Name"}}]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [[1, 2], (1, 2)])
async def test_sequence_payload_wrapped(payload: Any, fake_sleep: Any) -> None:
    get_brand = bind(brand_operation(Recorder(Outcome.ok(payload))), sleep=fake_sleep)
    assert await get_brand({"brandId": 1}) == {"items": [1, 2]}


@pytest.mark.asyncio
async def test_none_payload_passthrough(fake_sleep: Any) -> None:
    get_brand = bind(brand_operation(Recorder(Outcome.ok(None))), sleep=fake_sleep)
    assert await get_brand({"brandId": 1}) is None


@pytest.mark.asyncio
async def test_invalid_params_not_invoked(fake_sleep: Any) -> None:
    invoke = Recorder()
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)

    with pytest.raises(OperationError) as exc_info:
        await get_brand({"brandId": "not-a-number"})

    assert exc_info.value.code is ErrorCode.INVALID_PARAMS
    assert exc_info.value.message.startswith("Invalid parameters: brandId")
    assert invoke.calls == []


@pytest.mark.asyncio
async def test_missing_required_param(fake_sleep: Any) -> None:
    get_brand = bind(brand_operation(Recorder()), sleep=fake_sleep)
    with pytest.raises(OperationError, match="Invalid parameters"):
        await get_brand()


@pytest.mark.asyncio
async def test_terminal_error_raised_once(fake_sleep: Any) -> None:
    cause = {"status": 404, "message": "Brand not found"}
    invoke = Recorder({"data": None, "error": cause})
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)

    with pytest.raises(OperationError) as exc_info:
        await get_brand({"brandId": 1})

    error = exc_info.value
    assert error.code is ErrorCode.NOT_FOUND
    assert error.cause_value is cause
    assert json.loads(error.message) == cause
    assert len(invoke.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_string_error_message(fake_sleep: Any) -> None:
    get_brand = bind(brand_operation(Recorder(Outcome.fail("boom"))), sleep=fake_sleep)
    with pytest.raises(OperationError, match="^boom$"):
        await get_brand({"brandId": 1})


@pytest.mark.asyncio
async def test_raised_network_error_retried(fake_sleep: Any) -> None:
    invoke = Recorder(ConnectionResetError("read ECONNRESET"), Outcome.ok({"Id": 1}))
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)

    assert await get_brand({"brandId": 1}) == {"Id": 1}
    assert len(invoke.calls) == 2
    assert len(fake_sleep.delays) == 1


@pytest.mark.asyncio
async def test_exhausted_retries_raise_last_error(fake_sleep: Any) -> None:
    invoke = Recorder(Outcome.fail({"status": 503}))
    get_brand = bind(brand_operation(invoke), sleep=fake_sleep)

    with pytest.raises(OperationError) as exc_info:
        await get_brand({"brandId": 1})

    assert exc_info.value.code is ErrorCode.EXTERNAL_SERVICE_ERROR
    assert exc_info.value.recoverable
    assert len(invoke.calls) == 4


@pytest.mark.asyncio
async def test_policy_override(fake_sleep: Any) -> None:
    invoke = Recorder(Outcome.fail({"status": 503}))
    get_brand = bind(brand_operation(invoke), policy=NO_RETRY, sleep=fake_sleep)
    with pytest.raises(OperationError):
        await get_brand({"brandId": 1})
    assert len(invoke.calls) == 1


@pytest.mark.asyncio
async def test_context_merged_outside_schema(fake_sleep: Any) -> None:
    invoke = Recorder()

    async def context() -> dict[str, Any]:
        return {"client": "shop-client", "path": {"ignored": True}}

    get_brand = bind(brand_operation(invoke), context=context, sleep=fake_sleep)
    await get_brand({"brandId": 2})

    assert invoke.calls == [{"client": "shop-client", "path": {"brandId": 2}}]
    assert "client" not in get_brand.schema


@pytest.mark.asyncio
async def test_sync_invoker_and_context(fake_sleep: Any) -> None:
    calls: list[Any] = []

    def invoke(call: Any) -> Outcome[str]:
        calls.append(call)
        return Outcome.ok("sync")

    op = Operation(
        id="SET_SKUS",
        description="Replace the SKU list.",
        shape=RequestShape(body=OpaqueShape(list[int])),
        invoke=invoke,
    )
    bound = bind(op, context=lambda: {"tenant": "acme"}, sleep=fake_sleep)
    assert await bound({"body": [1, 2]}) == "sync"
    assert calls == [{"tenant": "acme", "body": [1, 2]}]


def test_bound_metadata() -> None:
    bound = bind(brand_operation(Recorder(), annotations={"readOnlyHint": True}))
    assert bound.id == "VTEX_GET_BRAND"
    assert bound.annotations == {"readOnlyHint": True}
    schema = bound.json_schema()
    assert set(schema["properties"]) == {"brandId", "fields"}
    assert schema["required"] == ["brandId"]


def test_operation_validation() -> None:
    with pytest.raises(ValueError):
        Operation(id="get brand", description="Get a brand.", shape=BRAND_SHAPE, invoke=Recorder())
    with pytest.raises(ValueError):
        Operation(id="GET_BRAND", description="  ", shape=BRAND_SHAPE, invoke=Recorder())


@pytest.mark.asyncio
async def test_empty_error_field_is_success(fake_sleep: Any) -> None:
    op = Operation(
        id="GET_STATUS",
        description="Get service status.",
        shape=RequestShape(),
        invoke=lambda call: {"data": {"ok": 1}, "error": ""},
    )
    assert await bind(op, sleep=fake_sleep)({}) == {"ok": 1}


@pytest.mark.asyncio
async def test_opaque_body_reaches_invoker_unchanged(fake_sleep: Any) -> None:
    invoke = Recorder()
    payload = (1, 2, 3)
    op = Operation(
        id="SET_SKUS",
        description="Replace the SKU list.",
        shape=RequestShape(body=OpaqueShape(tuple[int, ...])),
        invoke=invoke,
    )
    await bind(op, sleep=fake_sleep)({"body": payload})
    assert invoke.calls[0]["body"] is payload


@pytest.mark.asyncio
async def test_backoff_does_not_block_other_calls() -> None:
    finished: list[str] = []
    policy = RetryPolicy(max_retries=1, backoff=ConstantBackoff(0.2))

    async def run(name: str, invoke: Recorder) -> None:
        op = Operation(id=f"GET_{name}", description="Get a brand.", shape=BRAND_SHAPE, invoke=invoke)
        await bind(op, policy=policy)({"brandId": 1})
        finished.append(name)

    slow = Recorder(Outcome.fail({"status": 503}), Outcome.ok({"ok": True}))
    fast = Recorder(Outcome.ok({"ok": True}))
    await asyncio.gather(run("A", slow), run("B", fast))

    assert finished == ["B", "A"]
    assert len(slow.calls) == 2
    assert len(fast.calls) == 1
