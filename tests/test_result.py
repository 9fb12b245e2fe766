"""Unit tests for the Result container used by validation and loading."""

from __future__ import annotations

from contextmeta.core.result import Err, Ok, Result, err, ok


def test_ok_map_and_unwrap() -> None:
    """`Ok` maps its value and unwraps it."""
    r: Result[int, str] = ok(10)
    r2 = r.map(lambda x: x + 5)
    assert r2.is_ok() and not r2.is_err()
    assert r2.unwrap() == 15
    assert isinstance(r2, Ok)


def test_err_propagates_through_map() -> None:
    """`Err` passes through `map` untouched."""
    r: Result[int, str] = err("boom")
    mapped = r.map(lambda x: x + 1)
    assert isinstance(mapped, Err)
    assert mapped.unwrap_err() == "boom"


def test_unwrap_on_err_raises() -> None:
    """Unwrapping the wrong variant raises RuntimeError."""
    raised = {"unwrap": False, "unwrap_err": False}
    try:
        err("e").unwrap()
    except RuntimeError:
        raised["unwrap"] = True
    try:
        ok(1).unwrap_err()
    except RuntimeError:
        raised["unwrap_err"] = True
    assert raised == {"unwrap": True, "unwrap_err": True}


def test_or_else_only_called_on_err() -> None:
    """`or_else` computes a fallback value from the error."""
    calls: list[str] = []

    def fallback(e: str) -> int:
        calls.append(e)
        return 7

    assert ok(3).or_else(fallback) == 3
    assert calls == []
    assert err("missing").or_else(fallback) == 7
    assert calls == ["missing"]
