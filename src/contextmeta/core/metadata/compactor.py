"""Compactor: fold the journal into a new base snapshot.

Steps, in order:

1. **Load**     the base snapshot (or a default one).
2. **Fold**     every journal delta over it.
3. **Validate** the result, repairing it if needed, so no invalid snapshot is
   ever persisted.
4. **Finalize** ``lastUpdated = now`` and ``essential.sessionCount += 1``
   (a compaction counts as a session boundary).
5. **Persist**  both snapshot files.
6. **Truncate** the journal.

A corrupt journal aborts at step 2 before anything is written. A failure in
step 5 or 6 raises :class:`CompactionError` and leaves the journal on disk so
the compaction can be retried; the snapshot files may already have been
replaced by then, so a retry can count the session boundary twice.
"""

from __future__ import annotations

import logging
from typing import Any

from contextmeta.core.clock import Clock, timestamp, utc_now
from contextmeta.core.contracts.snapshot import Snapshot
from contextmeta.core.errors import CompactionError, JournalError, SnapshotStoreError
from contextmeta.core.metadata.applier import fold
from contextmeta.core.metadata.journal import DeltaJournal
from contextmeta.core.metadata.schema import DEFAULT_HISTORY_LIMIT, default_snapshot, ensure_valid
from contextmeta.core.metadata.snapshot_store import SnapshotStore
from contextmeta.core.settings import DEFAULT_STACK, get_logger


def _bump_session_count(snapshot: Snapshot) -> None:
    essential = snapshot["essential"]
    current: Any = essential.get("sessionCount")
    if isinstance(current, int) and not isinstance(current, bool):
        essential["sessionCount"] = current + 1
    else:
        essential["sessionCount"] = 1


class Compactor:
    """Fold a :class:`DeltaJournal` into a :class:`SnapshotStore`."""

    def __init__(
        self,
        store: SnapshotStore,
        journal: DeltaJournal,
        *,
        default_stack: str = DEFAULT_STACK,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Clock = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.journal = journal
        self.default_stack = default_stack
        self.history_limit = history_limit
        self.clock = clock
        self._log = logger or get_logger("contextmeta.compactor")

    def _load_base(self) -> Snapshot:
        def _fallback(missing: Any) -> Snapshot:
            self._log.info("No base snapshot (%s); compacting onto defaults", missing.reason)
            return default_snapshot(default_stack=self.default_stack, clock=self.clock)

        base = self.store.load().or_else(_fallback)
        if not isinstance(base, dict):
            self._log.warning("Base snapshot is not an object; compacting onto defaults")
            return default_snapshot(default_stack=self.default_stack, clock=self.clock)
        return base

    def compact(self) -> Snapshot:
        """Run one compaction and return the snapshot that was persisted.

        Raises
        ------
        JournalCorruptionError
            If the journal cannot be replayed; nothing is written.
        CompactionError
            If persisting the snapshot or truncating the journal fails.
        """
        base = self._load_base()
        deltas = self.journal.read_all()
        folded = fold(base, deltas)

        snapshot, errors = ensure_valid(
            folded,
            default_stack=self.default_stack,
            history_limit=self.history_limit,
            clock=self.clock,
        )
        if errors:
            self._log.warning(
                "Folded snapshot failed validation (%s); repaired before saving",
                "; ".join(str(e) for e in errors),
            )

        snapshot["lastUpdated"] = timestamp(self.clock)
        _bump_session_count(snapshot)

        try:
            self.store.save(snapshot)
        except SnapshotStoreError as e:
            raise CompactionError(f"Compaction aborted, journal kept: {e}") from e
        try:
            self.journal.truncate()
        except JournalError as e:
            raise CompactionError(f"Snapshot saved but journal not truncated: {e}") from e

        self._log.info("Compacted %d deltas into base snapshot", len(deltas))
        return snapshot


__all__ = ["Compactor"]
