"""Append-only delta journal (``context-deltas.jsonl``).

One :class:`Delta` per line, compact JSON, UTF-8, no array wrapper. Append
order is application order.

Reading is all-or-nothing: a single malformed line raises
:class:`JournalCorruptionError` instead of being skipped, since a partial
replay would silently lose updates. A missing journal is simply empty.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from contextmeta.core.contracts.delta import Delta
from contextmeta.core.errors import JournalCorruptionError, JournalError
from contextmeta.core.settings import get_logger

JOURNAL_NAME = "context-deltas.jsonl"


class DeltaJournal:
    """The journal file under ``base_dir``."""

    def __init__(self, base_dir: Path, *, logger: logging.Logger | None = None) -> None:
        self.path = base_dir / JOURNAL_NAME
        self._log = logger or get_logger("contextmeta.journal")

    def exists(self) -> bool:
        return self.path.exists()

    def append(self, delta: Delta) -> None:
        """Append ``delta`` as one line. Existing records are never rewritten."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(delta.to_line() + "\n")
        except OSError as e:
            raise JournalError(f"Could not append to {self.path}: {e}") from e

    def _lines(self, *, errors: str = "strict") -> list[tuple[int, str]]:
        """Return ``(line_no, text)`` for every non-blank line."""
        if not self.path.exists():
            return []
        content = self.path.read_text(encoding="utf-8", errors=errors)
        return [
            (line_no, line)
            for line_no, line in enumerate(content.split("\n"), start=1)
            if line.strip()
        ]

    def count(self) -> int:
        """Return the number of non-blank lines without parsing them.

        Undecodable bytes are replaced rather than raised, so the count is
        available even for a journal that :meth:`read_all` rejects.
        """
        return len(self._lines(errors="replace"))

    def read_all(self) -> list[Delta]:
        """Parse every record in order.

        Raises
        ------
        JournalCorruptionError
            If any line is not valid JSON or not a well-formed delta.
        """
        try:
            lines = self._lines()
        except UnicodeDecodeError as e:
            raise JournalCorruptionError(self.path, 0, f"not UTF-8: {e}") from e

        deltas: list[Delta] = []
        for line_no, line in lines:
            try:
                deltas.append(Delta.model_validate_json(line))
            except ValidationError as e:
                reason = e.errors()[0]["msg"] if e.errors() else str(e)
                raise JournalCorruptionError(self.path, line_no, reason) from e
        return deltas

    def truncate(self) -> None:
        """Remove the journal. Only call after its deltas were folded and saved."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise JournalError(f"Could not remove {self.path}: {e}") from e


__all__ = ["JOURNAL_NAME", "DeltaJournal"]
