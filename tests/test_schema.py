"""Unit tests for snapshot validation and repair."""

from __future__ import annotations

from typing import Any

import pytest

from contextmeta.core.contracts.snapshot import SCHEMA_VERSION
from contextmeta.core.metadata.schema import default_snapshot, ensure_valid, repair, validate
from contextmeta.core.settings import DEFAULT_STACK

NOW = "2026-01-18T08:00:00.000Z"


def _valid() -> dict[str, Any]:
    return {
        "version": 3,
        "lastUpdated": "2026-01-17T10:00:00.000Z",
        "essential": {
            "lastSession": "2026-01-17",
            "stack": "Vite + TypeScript",
            "projects": ["iron-tracker"],
            "sessionCount": 4,
        },
        "sessionHistory": [],
        "extra": {"kept": True},
    }


def test_validate_accepts_well_formed_document() -> None:
    """A valid document comes back unchanged, unknown keys included."""
    doc = _valid()
    result = validate(doc)
    assert result.is_ok()
    assert result.unwrap() is doc


def test_validate_collects_every_violation() -> None:
    """All violations are reported, not just the first."""
    doc = {
        "version": "3",
        "lastUpdated": 12,
        "essential": {"lastSession": "", "stack": None, "projects": "a,b"},
    }
    result = validate(doc)
    assert result.is_err()
    paths = {e.path for e in result.unwrap_err()}
    assert paths == {
        "version",
        "lastUpdated",
        "essential.lastSession",
        "essential.stack",
        "essential.projects",
    }


@pytest.mark.parametrize("candidate", [None, [], "snapshot", 42])
def test_validate_rejects_non_objects(candidate: Any) -> None:
    result = validate(candidate)
    assert result.is_err()
    assert [e.path for e in result.unwrap_err()] == ["<root>"]


def test_validate_rejects_boolean_version() -> None:
    """`true` is not a schema version."""
    doc = _valid()
    doc["version"] = True
    assert validate(doc).is_err()


def test_validate_missing_essential_reports_one_error() -> None:
    doc = {"version": 3, "lastUpdated": NOW}
    errors = validate(doc).unwrap_err()
    assert [e.path for e in errors] == ["essential"]


def test_repair_salvages_partial_document() -> None:
    """Only lastSession is usable; everything else comes from defaults."""
    fixed = repair({"essential": {"lastSession": "2026-01-01"}}, now=NOW)

    assert fixed["version"] == SCHEMA_VERSION
    assert fixed["lastUpdated"] == NOW
    assert fixed["essential"]["lastSession"] == "2026-01-01"
    assert fixed["essential"]["stack"] == DEFAULT_STACK
    assert fixed["essential"]["projects"] == []
    assert fixed["essential"]["sessionCount"] == 0
    assert validate(fixed).is_ok()


def test_repair_overwrites_version_and_timestamp() -> None:
    doc = _valid()
    doc["version"] = 1
    fixed = repair(doc, now=NOW)
    assert fixed["version"] == SCHEMA_VERSION
    assert fixed["lastUpdated"] == NOW
    assert fixed["essential"]["projects"] == ["iron-tracker"]
    assert fixed["essential"]["sessionCount"] == 4
    assert "extra" not in fixed


def test_repair_drops_invalid_fields_individually() -> None:
    doc = {
        "essential": {
            "lastSession": 20260101,
            "stack": "Custom Stack",
            "projects": "not-a-list",
            "sessionCount": -2,
        }
    }
    fixed = repair(doc, now=NOW)
    assert fixed["essential"] == {
        "lastSession": "Unknown",
        "stack": "Custom Stack",
        "projects": [],
        "sessionCount": 0,
    }


def test_repair_keeps_most_recent_history() -> None:
    history = [{"summary": str(i)} for i in range(15)]
    fixed = repair({"sessionHistory": history}, now=NOW)
    assert [h["summary"] for h in fixed["sessionHistory"]] == [str(i) for i in range(5, 15)]

    short = repair({"sessionHistory": history}, now=NOW, history_limit=3)
    assert len(short["sessionHistory"]) == 3


@pytest.mark.parametrize(
    "candidate",
    [
        None,
        {},
        [],
        "garbage",
        {"essential": "nope", "sessionHistory": 3},
        {"essential": {"lastSession": "2026-01-01"}},
        {"version": 9, "essential": {"projects": [1, {"x": 2}]}, "sessionHistory": [1] * 20},
    ],
)
def test_repair_is_idempotent(candidate: Any) -> None:
    once = repair(candidate, now=NOW)
    assert repair(once, now=NOW) == once
    assert validate(once).is_ok()


def test_repair_does_not_alias_candidate_lists() -> None:
    doc = _valid()
    fixed = repair(doc, now=NOW)
    fixed["essential"]["projects"].append("toku-tracker")
    assert doc["essential"]["projects"] == ["iron-tracker"]


def test_ensure_valid_returns_errors_only_when_repaired() -> None:
    doc = _valid()
    snapshot, errors = ensure_valid(doc)
    assert snapshot is doc and errors == []

    snapshot, errors = ensure_valid(None, default_stack="Python")
    assert errors
    assert snapshot["essential"]["stack"] == "Python"


def test_default_snapshot_shape() -> None:
    snap = default_snapshot(now=NOW)
    assert snap == {
        "version": SCHEMA_VERSION,
        "lastUpdated": NOW,
        "essential": {
            "lastSession": "Unknown",
            "stack": DEFAULT_STACK,
            "projects": [],
            "sessionCount": 0,
        },
    }
