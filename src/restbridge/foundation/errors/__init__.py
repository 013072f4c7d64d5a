"""Unified error handling for restbridge.

- ErrorCode / FailureKind: error codes and retry classification
- Outcome: the ``{data} | {error}`` result of one underlying call
- OperationError: the failure raised by a bound operation
"""

from .errors import (
    ErrorCode,
    FailureKind,
    HttpErrorBody,
    OperationError,
    RestbridgeError,
    RetryExhaustedError,
    SchemaError,
    classify_failure,
    code_for_error,
    describe_error,
    error_status,
    format_validation_error,
)
from .result import Outcome

__all__ = [
    # Codes & classification
    "ErrorCode", "FailureKind", "classify_failure", "code_for_error", "describe_error", "error_status",
    "format_validation_error",
    # Exceptions & error values
    "RestbridgeError", "SchemaError", "OperationError", "RetryExhaustedError", "HttpErrorBody",
    # Result shape
    "Outcome",
]
