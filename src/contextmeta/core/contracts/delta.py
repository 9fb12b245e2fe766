"""Delta contract: one incremental mutation recorded in the journal.

Wire format (one per journal line, compact JSON):

    {"timestamp":"2026-01-18T08:00:00.000Z","op":"set","field":"essential.stack","value":"Vite"}

``op`` is kept as a plain string on read so that a record written by a newer
tool with an operation this version does not know still parses; the applier
treats such records as no-ops. New deltas are only created through
:meth:`Delta.create`, which accepts the known operations only.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from contextmeta.core.clock import Clock, isoformat_z, utc_now
from contextmeta.core.errors import InvalidDeltaError


class DeltaOp(StrEnum):
    """Known delta operations."""

    SET = "set"
    ADD = "add"
    REMOVE = "remove"


class Delta(BaseModel):
    """Immutable journal record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: StrictStr = Field(description="UTC ISO-8601 creation time.")
    op: StrictStr = Field(description="One of set|add|remove.")
    field: StrictStr = Field(min_length=1, description="Dot-delimited target path.")
    value: Any = Field(default=None, description="JSON payload; meaning depends on op.")

    @classmethod
    def create(
        cls,
        op: DeltaOp | str,
        field: str,
        value: Any = None,
        *,
        clock: Clock = utc_now,
    ) -> Delta:
        """Build a new delta stamped with ``clock()``.

        Raises
        ------
        InvalidDeltaError
            If ``op`` is not a known operation or ``field`` is empty.
        """
        try:
            known = DeltaOp(op)
        except ValueError as e:
            choices = ", ".join(o.value for o in DeltaOp)
            raise InvalidDeltaError(f"Unknown delta op {op!r} (expected one of {choices})") from e
        if not field or not field.strip("."):
            raise InvalidDeltaError("Delta field must be a non-empty dotted path")
        return cls(timestamp=isoformat_z(clock()), op=known.value, field=field, value=value)

    def to_line(self) -> str:
        """Serialize as a single compact JSON line (no trailing newline)."""
        return self.model_dump_json()


__all__ = ["Delta", "DeltaOp"]
