"""Outcome of a single underlying call: ``{data}`` or ``{error}``.

Every invocation target returns an Outcome. An outcome is a failure exactly
when it carries a truthy ``error``; falsy errors (``None``, ``""``, ``{}``)
mean success and ``data`` is meaningful only then.

Examples:
    >>> Outcome.ok({"id": 1}).is_ok()
    True
    >>> Outcome.fail({"status": 404}).unwrap_err()
    {'status': 404}
    >>> Outcome.from_mapping({"data": [1, 2]}).data
    [1, 2]
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Outcome(Generic[T]):
    """Success payload or error value of one call attempt."""

    __slots__ = ("_data", "_error")
    __match_args__ = ("data", "error")

    def __init__(self, data: T | None = None, error: object = None) -> None:
        self._data = data
        self._error = error if error else None

    @classmethod
    def ok(cls, data: T | None = None) -> Outcome[T]:
        return cls(data, None)

    @classmethod
    def fail(cls, error: object) -> Outcome[T]:
        if not error:
            raise ValueError("Outcome.fail() needs a non-empty error value")
        return cls(None, error)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Outcome[Any]:
        """Adapt an SDK-style ``{"data": ..., "error": ...}`` mapping."""
        return cls(raw.get("data"), raw.get("error"))

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def error(self) -> object:
        return self._error

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> T | None:
        """Extract data. Raises RuntimeError on a failed outcome."""
        if self._error is None:
            return self._data
        raise RuntimeError(f"unwrap() on failed outcome: {self._error!r}")

    def unwrap_err(self) -> object:
        """Extract error. Raises RuntimeError on a successful outcome."""
        if self._error is not None:
            return self._error
        raise RuntimeError(f"unwrap_err() on successful outcome: {self._data!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return self._data == other._data and self._error == other._error

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Outcome(error={self._error!r})" if self._error is not None else f"Outcome(data={self._data!r})"
