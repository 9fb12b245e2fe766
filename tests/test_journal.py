"""Unit tests for the append-only delta journal."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from contextmeta.core.contracts.delta import Delta, DeltaOp
from contextmeta.core.errors import InvalidDeltaError, JournalCorruptionError
from contextmeta.core.metadata.journal import JOURNAL_NAME, DeltaJournal


def _clock() -> datetime:
    return datetime(2026, 1, 18, 8, 0, 0, 123456, tzinfo=UTC)


def test_missing_journal_reads_empty(tmp_path: Path) -> None:
    journal = DeltaJournal(tmp_path)
    assert not journal.exists()
    assert journal.read_all() == []
    assert journal.count() == 0


def test_append_writes_one_compact_line_per_delta(tmp_path: Path) -> None:
    journal = DeltaJournal(tmp_path)
    journal.append(Delta.create("set", "essential.lastSession", "2026-01-18", clock=_clock))
    journal.append(Delta.create(DeltaOp.ADD, "essential.projects", "iron-tracker", clock=_clock))

    lines = (tmp_path / JOURNAL_NAME).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert '"op":"set"' in lines[0]
    assert '"field":"essential.lastSession"' in lines[0]
    assert json.loads(lines[1]) == {
        "timestamp": "2026-01-18T08:00:00.123Z",
        "op": "add",
        "field": "essential.projects",
        "value": "iron-tracker",
    }


def test_read_all_preserves_append_order(tmp_path: Path) -> None:
    journal = DeltaJournal(tmp_path)
    for i in range(5):
        journal.append(Delta.create("set", f"essential.k{i}", i, clock=_clock))
    assert [d.field for d in journal.read_all()] == [f"essential.k{i}" for i in range(5)]
    assert journal.count() == 5


def test_malformed_line_aborts_read(tmp_path: Path) -> None:
    """One bad line anywhere fails the whole read with its line number."""
    journal = DeltaJournal(tmp_path)
    journal.append(Delta.create("set", "essential.stack", "Vite", clock=_clock))
    with (tmp_path / JOURNAL_NAME).open("a", encoding="utf-8") as f:
        f.write("{this is not json\n")
    journal.append(Delta.create("set", "essential.stack", "Vue", clock=_clock))

    with pytest.raises(JournalCorruptionError) as info:
        journal.read_all()
    assert info.value.line_no == 2
    assert journal.count() == 3


def test_wrong_shape_counts_as_corruption(tmp_path: Path) -> None:
    (tmp_path / JOURNAL_NAME).write_text('{"op": "set", "value": 1}\n', encoding="utf-8")
    with pytest.raises(JournalCorruptionError):
        DeltaJournal(tmp_path).read_all()


def test_unknown_op_on_disk_still_parses(tmp_path: Path) -> None:
    record = {"timestamp": "t", "op": "merge", "field": "essential.x", "value": 1}
    (tmp_path / JOURNAL_NAME).write_text(json.dumps(record) + "\n", encoding="utf-8")
    assert DeltaJournal(tmp_path).read_all()[0].op == "merge"


def test_truncate_removes_file(tmp_path: Path) -> None:
    journal = DeltaJournal(tmp_path)
    journal.append(Delta.create("remove", "essential.stack", clock=_clock))
    journal.truncate()
    assert not journal.exists()
    journal.truncate()


@pytest.mark.parametrize("op, field", [("merge", "essential.x"), ("set", ""), ("add", "...")])
def test_create_rejects_invalid_deltas(op: str, field: str) -> None:
    with pytest.raises(InvalidDeltaError):
        Delta.create(op, field, 1)


def test_blank_lines_are_skipped_by_count_and_read(tmp_path: Path) -> None:
    journal = DeltaJournal(tmp_path)
    journal.append(Delta.create("set", "essential.stack", "Vite", clock=_clock))
    with (tmp_path / JOURNAL_NAME).open("a", encoding="utf-8") as f:
        f.write("\n   \n")
    journal.append(Delta.create("set", "essential.stack", "Vue", clock=_clock))

    assert journal.count() == 2
    assert [d.value for d in journal.read_all()] == ["Vite", "Vue"]


def test_non_utf8_journal_counts_but_fails_replay(tmp_path: Path) -> None:
    """Counting never decodes strictly; replay rejects the bytes."""
    (tmp_path / JOURNAL_NAME).write_bytes(b"\xff\n")
    journal = DeltaJournal(tmp_path)

    assert journal.count() == 1
    with pytest.raises(JournalCorruptionError):
        journal.read_all()
