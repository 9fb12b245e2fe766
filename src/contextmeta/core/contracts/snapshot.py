"""Snapshot contracts: the shape of the persisted metadata document.

The snapshot itself travels through the store as a plain JSON object
(``dict[str, Any]``) because deltas may address arbitrary nested keys. The
Pydantic models below describe the *required* part of that document and are
used only to check it, never to re-serialize it, so unknown keys survive.

Document shape
--------------
{ "version": 3, "lastUpdated": "<ISO-8601>",
  "essential": { "lastSession": "<str>", "stack": "<str>",
                 "projects": ["<str>", ...], "sessionCount": <int> },
  "sessionHistory": [ {"timestamp": ..., "sessionType": ..., "summary": ...} ] }

Strictness
----------
Fields use strict types: a JSON ``true`` is not a version number and ``"3"``
is not a version either. ``sessionCount`` and ``sessionHistory`` are not part
of the structural check; repair still salvages them field by field.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

SCHEMA_VERSION = 3
DEFAULT_LAST_SESSION = "Unknown"

Snapshot = dict[str, Any]

NonEmptyStr = Annotated[str, Field(strict=True, min_length=1)]


class EssentialContract(BaseModel):
    """Required fields of the ``essential`` sub-document."""

    model_config = ConfigDict(extra="allow")

    lastSession: NonEmptyStr
    stack: NonEmptyStr
    projects: list[Any] = Field(strict=True)


class SnapshotContract(BaseModel):
    """Required top-level fields of a snapshot document."""

    model_config = ConfigDict(extra="allow")

    version: Any
    lastUpdated: StrictStr
    essential: EssentialContract

    @field_validator("version")
    @classmethod
    def _version_is_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, int | float):
            raise ValueError("version must be a number")
        return v


class HistoryEntry(BaseModel):
    """One ``sessionHistory`` record."""

    timestamp: str
    sessionType: str
    summary: str
    previousContext: str | None = None


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single structural violation found by the validator.

    Attributes
    ----------
    path : str
        Dotted location of the offending field, ``"<root>"`` for the document.
    message : str
        Human-readable reason.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


__all__ = [
    "SCHEMA_VERSION",
    "DEFAULT_LAST_SESSION",
    "Snapshot",
    "EssentialContract",
    "SnapshotContract",
    "HistoryEntry",
    "FieldError",
]
