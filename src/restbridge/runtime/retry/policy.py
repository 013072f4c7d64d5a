"""Retry policy and the resilient invoker.

Wraps one underlying call with a bounded exponential-backoff retry loop.
Failed outcomes are classified (see ``classify_failure``):

- network-transient and HTTP-transient (429 / 5xx) failures are retried
- terminal failures are returned immediately

Once the budget is exhausted the last failed outcome is returned unchanged.
The backoff sleep is awaited, so concurrent invocations never wait on each
other.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from restbridge.foundation.errors import FailureKind, Outcome, RetryExhaustedError, classify_failure

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from restbridge.foundation.config import RetrySettings


logger = logging.getLogger("restbridge.retry")

Attempt = Callable[[], "Outcome[Any] | Awaitable[Outcome[Any]] | Mapping[str, Any]"]
Sleep = Callable[[float], Awaitable[None]]


class RetryPolicy(BaseModel):
    """Retry budget and backoff for one invocation.

    Attributes:
        max_retries: Retries after the first attempt (0 = no retries)
        backoff: Backoff strategy for delay calculation
        on_retry: Optional callback ``(attempt, kind, delay)`` fired before each wait

    Example:
        >>> policy = RetryPolicy(max_retries=2, backoff=ExponentialBackoff(base=0.1))
        >>> outcome = await invoke_with_retry(call, policy)
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        extra="forbid",
        revalidate_instances="never",
    )

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    backoff: Backoff = Field(default_factory=ExponentialBackoff, repr=False)
    on_retry: Callable[[int, FailureKind, float], None] | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            backoff=ExponentialBackoff(
                base=settings.initial_delay,
                multiplier=settings.multiplier,
                jitter=settings.jitter,
                max_delay=settings.max_delay,
            ),
        )

    @computed_field
    @property
    def is_disabled(self) -> bool:
        return self.max_retries == 0

    def should_retry(self, error: object, attempt: int) -> bool:
        """Whether a failure at 0-indexed ``attempt`` should be retried."""
        return attempt < self.max_retries and classify_failure(error).is_transient

    def get_delay(self, attempt: int) -> float:
        return self.backoff.delay(attempt)


NO_RETRY = RetryPolicy(max_retries=0)


def _resolve_policy(policy: RetryPolicy | None, max_retries: int | None, initial_delay: float | None) -> RetryPolicy:
    if policy is not None:
        if max_retries is not None or initial_delay is not None:
            raise ValueError("Pass either a policy or max_retries/initial_delay, not both")
        return policy
    return RetryPolicy(
        max_retries=3 if max_retries is None else max_retries,
        backoff=ExponentialBackoff(base=0.5 if initial_delay is None else initial_delay),
    )


def _as_outcome(value: object) -> Outcome[Any]:
    if isinstance(value, Outcome):
        return value
    if isinstance(value, Mapping):
        return Outcome.from_mapping(value)
    raise TypeError(f"Invocation must return an Outcome or a {{data, error}} mapping, got {type(value).__name__}")


def _log_retry(operation: str, attempt: int, policy: RetryPolicy, kind: FailureKind, delay: float) -> None:
    logger.info(
        "[%s] Retry %d/%d after %.2fs (%s failure)",
        operation or "call", attempt + 1, policy.max_retries, delay, kind.value,
    )


async def invoke_with_retry(
    attempt: Attempt,
    policy: RetryPolicy | None = None,
    *,
    max_retries: int | None = None,
    initial_delay: float | None = None,
    sleep: Sleep = asyncio.sleep,
    operation: str = "",
) -> Outcome[Any]:
    """Call ``attempt`` until it succeeds, fails terminally or the budget runs out.

    Args:
        attempt: Zero-argument callable returning an Outcome (or awaitable of one)
        policy: Retry policy; defaults to 3 retries starting at 0.5s
        max_retries: Shorthand for ``RetryPolicy(max_retries=...)``
        initial_delay: Shorthand for the first backoff delay, seconds
        sleep: Awaitable sleep, injectable for deterministic tests
        operation: Name used in log records

    Returns:
        First successful outcome, or the last failed one unchanged
    """
    policy = _resolve_policy(policy, max_retries, initial_delay)

    for index in range(policy.max_retries + 1):
        result = attempt()
        if inspect.isawaitable(result):
            result = await result
        outcome = _as_outcome(result)
        if outcome.is_ok():
            return outcome

        if not policy.should_retry(outcome.error, index):
            return outcome

        kind = classify_failure(outcome.error)

        delay = policy.get_delay(index)
        _log_retry(operation, index, policy, kind, delay)
        if policy.on_retry:
            policy.on_retry(index, kind, delay)
        await sleep(delay)

    return Outcome.fail(RetryExhaustedError("Max retries exceeded"))


def invoke_with_retry_sync(
    attempt: Callable[[], Outcome[Any] | Mapping[str, Any]],
    policy: RetryPolicy | None = None,
    *,
    max_retries: int | None = None,
    initial_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    operation: str = "",
) -> Outcome[Any]:
    """Blocking twin of ``invoke_with_retry`` for synchronous call sites."""
    policy = _resolve_policy(policy, max_retries, initial_delay)

    for index in range(policy.max_retries + 1):
        outcome = _as_outcome(attempt())
        if outcome.is_ok():
            return outcome

        if not policy.should_retry(outcome.error, index):
            return outcome

        kind = classify_failure(outcome.error)

        delay = policy.get_delay(index)
        _log_retry(operation, index, policy, kind, delay)
        if policy.on_retry:
            policy.on_retry(index, kind, delay)
        sleep(delay)

    return Outcome.fail(RetryExhaustedError("Max retries exceeded"))
