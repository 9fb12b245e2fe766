"""UTC timestamp helpers.

All persisted timestamps are ISO-8601 strings in UTC with millisecond
precision and a trailing ``Z``, e.g. ``"2026-01-17T09:30:12.048Z"``.
Components take a ``Clock`` callable so tests can freeze time.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def isoformat_z(moment: datetime) -> str:
    """Format ``moment`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (converted to UTC)."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def timestamp(clock: Clock = utc_now) -> str:
    """Return ``clock()`` formatted with :func:`isoformat_z`."""
    return isoformat_z(clock())


__all__ = ["Clock", "utc_now", "isoformat_z", "timestamp"]
