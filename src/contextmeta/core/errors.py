"""Exception hierarchy for the metadata store.

Only ambiguous data states and I/O failures are exceptions. A missing snapshot
or a document that fails validation is recovered locally (default snapshot,
repair) and reported as a value, never raised.
"""

from __future__ import annotations

from pathlib import Path


class MetadataStoreError(Exception):
    """Base exception for all metadata store failures."""


class SnapshotStoreError(MetadataStoreError):
    """Writing or converting a snapshot file failed."""


class JournalError(MetadataStoreError):
    """Appending to or truncating the delta journal failed."""


class JournalCorruptionError(JournalError):
    """A journal line could not be parsed as a delta.

    Distinct from an absent journal: pending deltas exist but cannot be
    replayed, so folding would silently drop updates.
    """

    def __init__(self, path: Path, line_no: int, reason: str) -> None:
        self.path = path
        self.line_no = line_no
        self.reason = reason
        super().__init__(f"{path}: line {line_no} is not a valid delta ({reason})")


class CompactionError(MetadataStoreError):
    """Persisting the compacted snapshot or truncating the journal failed.

    The journal is left in place so the compaction can be retried.
    """


class InvalidDeltaError(MetadataStoreError, ValueError):
    """A delta with an unknown operation or an empty field was requested."""


__all__ = [
    "MetadataStoreError",
    "SnapshotStoreError",
    "JournalError",
    "JournalCorruptionError",
    "CompactionError",
    "InvalidDeltaError",
]
