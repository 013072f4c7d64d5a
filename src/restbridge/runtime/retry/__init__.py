"""Bounded retry for underlying calls.

Example:
    >>> from restbridge.runtime.retry import RetryPolicy, ExponentialBackoff, invoke_with_retry
    >>> policy = RetryPolicy(max_retries=3, backoff=ExponentialBackoff(base=0.5))
    >>> outcome = await invoke_with_retry(lambda: sdk_call(client, **call), policy)
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff
from .policy import (
    NO_RETRY,
    Attempt,
    RetryPolicy,
    Sleep,
    invoke_with_retry,
    invoke_with_retry_sync,
)

__all__ = [
    # Backoff strategies
    "Backoff",
    "ExponentialBackoff",
    "ConstantBackoff",
    # Policy
    "RetryPolicy",
    "NO_RETRY",
    # Execution
    "Attempt",
    "Sleep",
    "invoke_with_retry",
    "invoke_with_retry_sync",
]
