"""Typed Result container for checks that report failures as values.

The schema validator and the snapshot store do not raise for the conditions
they are expected to meet in normal operation (a malformed document, a missing
file). They return a `Result[T, E]` instead:

- `Ok(value)`  : the check passed, `value` is the accepted payload.
- `Err(error)` : the check failed, `error` describes why.

Callers branch on `is_ok()` / `is_err()` or recover with `or_else`.

Example
-------
>>> from contextmeta.core.result import ok, err, Result
>>> def positive(x: int) -> Result[int, str]:
...     return ok(x) if x > 0 else err("not positive")
>>> positive(3).map(lambda v: v * 2).unwrap()
6
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, cast

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class Result(Generic[T, E]):
    """Sum type representing either success (`Ok[T]`) or failure (`Err[E]`)."""

    def is_ok(self) -> bool:
        """Return ``True`` if this is an :class:`Ok` value."""
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        """Return ``True`` if this is an :class:`Err` value."""
        return isinstance(self, Err)

    def unwrap(self) -> T:
        """Return the inner value if ``Ok``; raise ``RuntimeError`` on ``Err``."""
        if isinstance(self, Ok):
            return cast(Ok[T, E], self).value
        raise RuntimeError(f"Attempted to unwrap Err: {self!r}")

    def unwrap_err(self) -> E:
        """Return the error value if ``Err``, else raise."""
        if isinstance(self, Err):
            return cast(Err[T, E], self).error
        raise RuntimeError(f"Attempted to unwrap_err on Ok: {self!r}")

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply ``fn`` to the success value; propagate error unchanged."""
        if isinstance(self, Ok):
            return Ok(fn(cast(Ok[T, E], self).value))
        return cast(Result[U, E], self)

    def or_else(self, fallback: Callable[[E], T]) -> T:
        """Return the success value, or ``fallback(error)`` when ``Err``."""
        if isinstance(self, Err):
            return fallback(cast(Err[T, E], self).error)
        return cast(Ok[T, E], self).value


@dataclass(frozen=True)
class Ok(Result[T, E]):
    """Successful result wrapping a value of type ``T``."""

    value: T


@dataclass(frozen=True)
class Err(Result[T, E]):
    """Failed result wrapping an error payload of type ``E``."""

    error: E


def ok(value: T) -> Result[T, E]:
    """Construct :class:`Ok` with better type inference at call sites."""
    return Ok(value)


def err(error: E) -> Result[T, E]:
    """Construct :class:`Err` with better type inference at call sites."""
    return Err(error)
