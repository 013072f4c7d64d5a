"""Shared fixtures."""

from __future__ import annotations

import pytest

from restbridge.registry import reset_registry


class FakeSleep:
    """Records requested backoff delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture(autouse=True)
def clean_registry() -> object:
    """Reset the global registry around each test."""
    reset_registry()
    yield
    reset_registry()
