"""Tests for outcomes, error codes and OperationError."""

from __future__ import annotations

import json

import httpx
import pytest

from restbridge.foundation.errors import (
    ErrorCode,
    HttpErrorBody,
    OperationError,
    Outcome,
    SchemaError,
    code_for_error,
    describe_error,
)


def test_outcome_ok_and_fail() -> None:
    ok = Outcome.ok([1, 2])
    assert ok.is_ok() and not ok.is_err()
    assert ok.unwrap() == [1, 2]

    err = Outcome.fail({"status": 404})
    assert err.is_err()
    assert err.unwrap_err() == {"status": 404}
    with pytest.raises(RuntimeError):
        err.unwrap()
    with pytest.raises(RuntimeError):
        ok.unwrap_err()


def test_outcome_fail_needs_error() -> None:
    with pytest.raises(ValueError):
        Outcome.fail(None)
    with pytest.raises(ValueError):
        Outcome.fail("")


def test_outcome_from_mapping() -> None:
    assert Outcome.from_mapping({"data": {"id": 1}}) == Outcome.ok({"id": 1})
    assert Outcome.from_mapping({"data": None, "error": "boom"}).error == "boom"
    assert Outcome.from_mapping({}).is_ok()


def test_falsy_error_means_success() -> None:
    assert Outcome.from_mapping({"data": {"ok": 1}, "error": ""}).unwrap() == {"ok": 1}
    assert Outcome({"ok": 1}, {}).is_ok()
    assert Outcome(None, 0).error is None


def test_outcome_pattern_matching() -> None:
    match Outcome.fail("boom"):
        case Outcome(error=None):
            pytest.fail("matched success")
        case Outcome(error=error):
            assert error == "boom"


@pytest.mark.parametrize(("error", "code"), [
    ({"status": 429}, ErrorCode.RATE_LIMITED),
    ({"status": 401}, ErrorCode.PERMISSION_DENIED),
    ({"status": 403}, ErrorCode.PERMISSION_DENIED),
    ({"status": 404}, ErrorCode.NOT_FOUND),
    ({"status": 422}, ErrorCode.INVALID_PARAMS),
    (HttpErrorBody(502, "Bad Gateway"), ErrorCode.EXTERNAL_SERVICE_ERROR),
    (ConnectionResetError("ECONNRESET"), ErrorCode.NETWORK_ERROR),
    (httpx.ReadTimeout("slow"), ErrorCode.TIMEOUT),
    (SchemaError("Missing path parameter 'id'"), ErrorCode.SCHEMA_ERROR),
    ("boom", ErrorCode.UNKNOWN),
    ({"status": 302}, ErrorCode.UNKNOWN),
])
def test_code_for_error(error: object, code: ErrorCode) -> None:
    assert code_for_error(error) is code


def test_describe_error() -> None:
    assert describe_error("boom") == "boom"
    assert describe_error("") == '""'
    assert describe_error(ValueError("bad sku")) == "bad sku"
    assert describe_error(TimeoutError()) == "TimeoutError"
    assert json.loads(describe_error({"status": 404, "message": "nope"})) == {"status": 404, "message": "nope"}
    assert json.loads(describe_error(HttpErrorBody(404, "nope")))["status"] == 404


def test_operation_error_from_error() -> None:
    cause = {"status": 503}
    error = OperationError.from_error("GET_BRAND", cause)
    assert error.operation_id == "GET_BRAND"
    assert error.code is ErrorCode.EXTERNAL_SERVICE_ERROR
    assert error.recoverable
    assert error.cause_value is cause
    assert error.to_dict() == {
        "operation": "GET_BRAND",
        "message": json.dumps(cause),
        "code": "EXTERNAL_SERVICE_ERROR",
        "recoverable": True,
    }


def test_operation_error_message_from_exception() -> None:
    error = OperationError.from_error("LIST_SKUS", ValueError("sku must be positive"))
    assert str(error) == "sku must be positive"
    assert error.message == "sku must be positive"
    assert not error.recoverable
