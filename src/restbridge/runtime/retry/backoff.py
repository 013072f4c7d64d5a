"""Backoff strategies for retry policies.

- ExponentialBackoff: exponential growth plus additive random jitter
- ConstantBackoff: fixed delay
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Protocol for backoff delay calculation.

    Attempt numbers are 0-indexed (first retry = attempt 0).
    """

    def delay(self, attempt: int) -> float:
        """Delay in seconds before the retry following ``attempt``."""
        ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff with additive jitter.

    Delay = min(base * multiplier ** attempt, max_delay) + uniform(0, jitter)

    With the defaults the first retry waits ~0.5s, the second ~1s and the
    third ~2s, each plus up to 200ms of jitter.

    Attributes:
        base: Delay before the first retry, seconds (default: 0.5)
        multiplier: Exponential growth factor (default: 2.0)
        jitter: Upper bound of the random addition, seconds (default: 0.2)
        max_delay: Optional cap applied before jitter
    """

    base: float = 0.5
    multiplier: float = 2.0
    jitter: float = 0.2
    max_delay: float | None = None

    def delay(self, attempt: int) -> float:
        d = self.base * (self.multiplier ** attempt)
        if self.max_delay is not None:
            d = min(d, self.max_delay)
        return d + random.uniform(0.0, self.jitter) if self.jitter > 0 else d


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Fixed delay between retries."""

    delay_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.delay_seconds
