"""
Schema validation and repair for snapshot documents.

Two operations with deliberately different temperaments:

- :func:`validate` is strict. It checks the document against
  :class:`SnapshotContract` and collects *every* violation instead of stopping
  at the first one. It returns ``Ok(document)`` untouched when clean.
- :func:`repair` is lenient and total. It starts from a default snapshot and
  copies over each known field from the candidate that passes its own type
  check. ``version`` and ``lastUpdated`` are always re-stamped. It never fails,
  not even for ``None`` or a non-object candidate.

``repair`` is idempotent for a fixed clock: ``repair(repair(x)) == repair(x)``.

Neither function logs; callers decide how to report violations.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import ValidationError

from contextmeta.core.clock import Clock, timestamp, utc_now
from contextmeta.core.contracts.snapshot import (
    DEFAULT_LAST_SESSION,
    SCHEMA_VERSION,
    FieldError,
    Snapshot,
    SnapshotContract,
)
from contextmeta.core.result import Result, err, ok
from contextmeta.core.settings import DEFAULT_STACK

DEFAULT_HISTORY_LIMIT = 10


def default_snapshot(
    *, now: str | None = None, default_stack: str = DEFAULT_STACK, clock: Clock = utc_now
) -> Snapshot:
    """Return a fresh, valid snapshot with default ``essential`` values."""
    return {
        "version": SCHEMA_VERSION,
        "lastUpdated": now if now is not None else timestamp(clock),
        "essential": {
            "lastSession": DEFAULT_LAST_SESSION,
            "stack": default_stack,
            "projects": [],
            "sessionCount": 0,
        },
    }


def _field_errors(exc: ValidationError) -> list[FieldError]:
    out: list[FieldError] = []
    for item in exc.errors():
        loc = ".".join(str(part) for part in item["loc"])
        if not loc:
            out.append(FieldError("<root>", "Snapshot is not an object"))
        else:
            out.append(FieldError(loc, item["msg"]))
    return out


def validate(candidate: Any) -> Result[Snapshot, list[FieldError]]:
    """Check ``candidate`` against the snapshot schema.

    Returns
    -------
    Result[Snapshot, list[FieldError]]
        ``Ok(candidate)`` if there are no violations, otherwise ``Err`` with
        all violations found.
    """
    try:
        SnapshotContract.model_validate(candidate)
    except ValidationError as exc:
        return err(_field_errors(exc))
    return ok(candidate)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def repair(
    candidate: Any,
    *,
    now: str | None = None,
    default_stack: str = DEFAULT_STACK,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    clock: Clock = utc_now,
) -> Snapshot:
    """Rebuild a valid snapshot from whatever can be salvaged in ``candidate``.

    Parameters
    ----------
    candidate : Any
        Untrusted document (may be ``None``, a list, a half-written object).
    now : str | None
        Timestamp to stamp into ``lastUpdated``; defaults to ``clock()``.
    default_stack : str
        Stack used when the candidate has no usable one.
    history_limit : int
        Number of most recent ``sessionHistory`` entries to keep.
    """
    repaired = default_snapshot(now=now, default_stack=default_stack, clock=clock)
    if not isinstance(candidate, dict):
        return repaired

    essential = candidate.get("essential")
    if isinstance(essential, dict):
        target = repaired["essential"]
        if _non_empty_str(essential.get("lastSession")):
            target["lastSession"] = essential["lastSession"]
        if _non_empty_str(essential.get("stack")):
            target["stack"] = essential["stack"]
        if isinstance(essential.get("projects"), list):
            target["projects"] = copy.deepcopy(essential["projects"])
        if _count(essential.get("sessionCount")):
            target["sessionCount"] = essential["sessionCount"]

    history = candidate.get("sessionHistory")
    if isinstance(history, list):
        repaired["sessionHistory"] = copy.deepcopy(history[-history_limit:])

    return repaired


def ensure_valid(
    candidate: Any,
    *,
    default_stack: str = DEFAULT_STACK,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    clock: Clock = utc_now,
) -> tuple[Snapshot, list[FieldError]]:
    """Validate ``candidate`` and fall back to :func:`repair` on failure.

    Returns the accepted (or repaired) snapshot together with the violations
    that triggered the repair; the list is empty when nothing was repaired.
    """
    result = validate(candidate)
    if result.is_ok():
        return result.unwrap(), []
    errors = result.unwrap_err()
    fixed = repair(candidate, default_stack=default_stack, history_limit=history_limit, clock=clock)
    return fixed, errors


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "default_snapshot",
    "validate",
    "repair",
    "ensure_valid",
]
