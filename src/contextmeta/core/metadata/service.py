"""
Metadata Service: the facade the CLI talks to.

The service owns one :class:`SnapshotStore`, one :class:`DeltaJournal` and one
:class:`Compactor` for a context directory. There is no module-level instance;
the CLI builds one per invocation with :meth:`MetadataService.from_settings`.

Call-order contracts
--------------------
- ``load_metadata``: store.load -> journal fold (always, even onto defaults)
  -> validate-or-repair. Never writes.
- ``update``: build a delta, append it, then compact synchronously once the
  journal holds ``compact_threshold`` records.
- ``compact_now``: compaction regardless of journal length.

Single-writer precondition
--------------------------
Nothing here locks the files. Two processes updating the same directory at
once can lose or double-apply deltas. The store is meant for one interactive
user running sequential commands.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from contextmeta.core.clock import Clock, isoformat_z, utc_now
from contextmeta.core.contracts.delta import Delta, DeltaOp
from contextmeta.core.contracts.snapshot import SCHEMA_VERSION, FieldError, HistoryEntry, Snapshot
from contextmeta.core.metadata.applier import fold
from contextmeta.core.metadata.compactor import Compactor
from contextmeta.core.metadata.journal import DeltaJournal
from contextmeta.core.metadata.markdown import extract_metadata
from contextmeta.core.metadata.schema import (
    DEFAULT_HISTORY_LIMIT,
    default_snapshot,
    ensure_valid,
    repair,
    validate,
)
from contextmeta.core.metadata.snapshot_store import SnapshotNotFound, SnapshotStore
from contextmeta.core.result import Result, err
from contextmeta.core.settings import DEFAULT_STACK, Settings, get_logger

MODULES_DIR_NAME = "context"


@dataclass(frozen=True, slots=True)
class MetadataStatus:
    """What is on disk for a context directory."""

    home: Path
    snapshot_present: bool
    compressed_present: bool
    journal_present: bool
    pending_deltas: int
    version: Any = None
    last_session: str | None = None
    session_count: int | None = None


class MetadataService:
    """Load, update and compact the session metadata in ``home``."""

    def __init__(
        self,
        home: Path,
        *,
        compact_threshold: int = 50,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        default_stack: str = DEFAULT_STACK,
        clock: Clock = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        if compact_threshold < 1:
            raise ValueError("compact_threshold must be >= 1")
        self.home = home
        self.compact_threshold = compact_threshold
        self.history_limit = history_limit
        self.default_stack = default_stack
        self.clock = clock
        self._log = logger or get_logger("contextmeta.service")

        self.store = SnapshotStore(home)
        self.journal = DeltaJournal(home)
        self.compactor = Compactor(
            self.store,
            self.journal,
            default_stack=default_stack,
            history_limit=history_limit,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings, *, home: Path | None = None) -> MetadataService:
        """Build a service from configuration, optionally overriding the directory."""
        return cls(
            home if home is not None else settings.home,
            compact_threshold=settings.compact_threshold,
            history_limit=settings.history_limit,
            default_stack=settings.default_stack,
        )

    # ------------------------------- Helpers -------------------------------

    def _default(self) -> Snapshot:
        return default_snapshot(default_stack=self.default_stack, clock=self.clock)

    def _ensure_valid(self, candidate: Any) -> Snapshot:
        snapshot, errors = ensure_valid(
            candidate,
            default_stack=self.default_stack,
            history_limit=self.history_limit,
            clock=self.clock,
        )
        if errors:
            self._log.warning("Metadata validation failed; auto-repaired:")
            for e in errors:
                self._log.warning("  - %s", e)
        return snapshot

    def load_base(self) -> Snapshot:
        """Return the stored snapshot object, or defaults if there is none."""
        loaded = self.store.load()
        if loaded.is_err():
            self._log.info("No metadata found (%s); using defaults", loaded.unwrap_err().reason)
            return self._default()
        doc = loaded.unwrap()
        if not isinstance(doc, dict):
            self._log.warning("Stored metadata is not an object; using defaults")
            return self._default()
        return doc

    # ------------------------------- Core API ------------------------------

    def load_metadata(self, *, skip_journal: bool = False) -> Snapshot:
        """Return the logical snapshot: base + pending deltas, validated.

        Parameters
        ----------
        skip_journal : bool
            Ignore pending deltas. Only meant as a remediation path after a
            :class:`JournalCorruptionError`; the pending updates are not
            reflected in the result.

        Raises
        ------
        JournalCorruptionError
            If the journal exists but cannot be replayed.
        """
        base = self.load_base()
        if skip_journal:
            self._log.warning("Skipping %d pending deltas on request", self.journal.count())
            return self._ensure_valid(base)

        deltas = self.journal.read_all()
        if deltas:
            self._log.info("Applied %d deltas", len(deltas))
        return self._ensure_valid(fold(base, deltas))

    def update(self, field: str, value: Any, op: DeltaOp | str = DeltaOp.SET) -> bool:
        """Record one delta; compact if the journal reached the threshold.

        Returns
        -------
        bool
            True if this call ran a compaction.

        Raises
        ------
        InvalidDeltaError
            Unknown ``op`` or empty ``field``.
        JournalError
            The delta could not be appended.
        """
        delta = Delta.create(op, field, value, clock=self.clock)
        self.journal.append(delta)
        self._log.info("Delta saved: %s %s", delta.op, delta.field)

        pending = self.journal.count()
        if pending >= self.compact_threshold:
            self._log.info("Journal holds %d deltas; compacting", pending)
            self.compactor.compact()
            return True
        return False

    def compact_now(self) -> Snapshot:
        """Compact regardless of the journal length."""
        return self.compactor.compact()

    # ------------------------------- Maintenance ---------------------------

    def status(self) -> MetadataStatus:
        """Summarize what is on disk without touching it."""
        version: Any = None
        last_session: str | None = None
        session_count: int | None = None

        loaded = self.store.load()
        if loaded.is_ok() and isinstance(doc := loaded.unwrap(), dict):
            version = doc.get("version")
            essential = doc.get("essential")
            if isinstance(essential, dict):
                last_session = essential.get("lastSession")
                session_count = essential.get("sessionCount")

        return MetadataStatus(
            home=self.home,
            snapshot_present=self.store.plain_path.exists(),
            compressed_present=self.store.compressed_path.exists(),
            journal_present=self.journal.exists(),
            pending_deltas=self.journal.count(),
            version=version,
            last_session=last_session,
            session_count=session_count,
        )

    def validate_stored(self) -> Result[Snapshot, list[FieldError]] | None:
        """Validate the stored base snapshot; ``None`` if there is none.

        A snapshot file that exists but cannot be read is reported as a
        ``<root>`` error rather than as missing.
        """
        loaded = self.store.load()
        if loaded.is_err():
            if not self.store.exists():
                return None
            return err([FieldError("<root>", loaded.unwrap_err().reason)])
        return validate(loaded.unwrap())

    def repair_stored(self) -> tuple[Snapshot, list[FieldError]] | None:
        """Repair and rewrite the stored base snapshot if it is invalid.

        Returns ``None`` when there is no snapshot to repair, otherwise the
        resulting snapshot and the violations that were fixed (empty when the
        snapshot was already valid and nothing was written).
        """
        result = self.validate_stored()
        if result is None:
            return None
        if result.is_ok():
            return result.unwrap(), []

        loaded: Result[Any, SnapshotNotFound] = self.store.load()
        errors = result.unwrap_err()
        fixed = repair(
            loaded.or_else(lambda _: None),
            default_stack=self.default_stack,
            history_limit=self.history_limit,
            clock=self.clock,
        )
        self.store.save(fixed)
        self._log.info("Metadata repaired (%d violations)", len(errors))
        return fixed, errors

    def record_session(self, session_type: str, summary: str) -> HistoryEntry:
        """Record a finished session through the journal.

        Sets ``essential.lastSession`` to today's date, increments
        ``essential.sessionCount`` and replaces ``sessionHistory`` with the
        bounded list including the new entry.
        """
        current = self.load_metadata()
        moment = self.clock()
        entry = HistoryEntry(
            timestamp=isoformat_z(moment),
            sessionType=session_type,
            summary=summary,
            previousContext="loaded" if self.store.exists() else "none",
        )
        history = current.get("sessionHistory")
        history = list(history) if isinstance(history, list) else []
        history.append(entry.model_dump(exclude_none=True))

        day: date = moment.date()
        self.update("essential.lastSession", day.isoformat())
        self.update("essential.sessionCount", 1, DeltaOp.ADD)
        self.update("sessionHistory", history[-self.history_limit :])
        return entry

    def compress(self) -> tuple[int, int]:
        """Rebuild ``context-metadata.json.gz`` from the plain file."""
        return self.store.compress()

    def decompress(self) -> int:
        """Rebuild ``context-metadata.json`` from the compressed file."""
        return self.store.decompress()

    def migrate_markdown(self, source: Path) -> Snapshot:
        """Replace the base snapshot with values extracted from ``source``.

        Pending deltas stay in the journal and still apply on top.
        """
        extracted = extract_metadata(
            source.read_text(encoding="utf-8"),
            default_stack=self.default_stack,
            clock=self.clock,
        )
        snapshot = self._ensure_valid(extracted)
        self.store.save(snapshot)
        return snapshot

    def modularize(self, out_dir: Path | None = None) -> list[Path]:
        """Split the logical snapshot into small JSON module files.

        Files: ``__init__.json``, ``base.json``, ``stack.json``,
        ``projects.json``, ``history.json``. Returns the written paths.
        """
        target = out_dir if out_dir is not None else self.home / MODULES_DIR_NAME
        target.mkdir(parents=True, exist_ok=True)
        snapshot = self.load_metadata()
        essential = snapshot["essential"]

        modules: dict[str, dict[str, Any]] = {
            "__init__.json": {
                "version": snapshot.get("version"),
                "schemaVersion": SCHEMA_VERSION,
                "lastUpdated": snapshot.get("lastUpdated"),
            },
            "base.json": {
                "lastSession": essential.get("lastSession"),
                "sessionCount": essential.get("sessionCount"),
            },
            "stack.json": {"stack": essential.get("stack")},
            "projects.json": {"projects": essential.get("projects")},
            "history.json": {"sessionHistory": snapshot.get("sessionHistory", [])},
        }

        written: list[Path] = []
        for name, payload in modules.items():
            path = target / name
            with path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.write("\n")
            written.append(path)
        self._log.info("Context modularized into %d files under %s", len(written), target)
        return written


__all__ = ["MetadataService", "MetadataStatus", "MODULES_DIR_NAME"]
