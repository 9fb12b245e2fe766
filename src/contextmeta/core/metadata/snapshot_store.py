"""Disk-backed snapshot store.

The base snapshot is kept in two representations inside the context
directory:

- ``context-metadata.json``    : pretty-printed UTF-8 JSON (``indent=2``).
- ``context-metadata.json.gz`` : gzip of exactly the same bytes.

Loading prefers the compressed file, falls back to the plain one, and finally
reports :class:`SnapshotNotFound`. A corrupt file is treated like a missing one
so the caller can always continue with a default snapshot.

Saving writes the compressed file first, then the plain file. Each file is
replaced via write-temp-then-rename, but the pair is not updated atomically:
a reader may observe one representation updated and the other not.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from contextmeta.core.errors import SnapshotStoreError
from contextmeta.core.result import Result, err, ok
from contextmeta.core.settings import get_logger

PLAIN_NAME = "context-metadata.json"
COMPRESSED_NAME = "context-metadata.json.gz"


@dataclass(frozen=True, slots=True)
class SnapshotNotFound:
    """No usable snapshot on disk; ``reason`` says why."""

    reason: str


def encode_snapshot(snapshot: Any) -> bytes:
    """Return the canonical on-disk bytes for ``snapshot``."""
    return json.dumps(snapshot, ensure_ascii=False, indent=2).encode("utf-8")


def _write_atomic(path: Path, data: bytes) -> None:
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


class SnapshotStore:
    """Read and write the base snapshot files under ``base_dir``."""

    def __init__(self, base_dir: Path, *, logger: logging.Logger | None = None) -> None:
        self.base_dir = base_dir
        self.plain_path = base_dir / PLAIN_NAME
        self.compressed_path = base_dir / COMPRESSED_NAME
        self._log = logger or get_logger("contextmeta.snapshot")

    # ------------------------------- Read ----------------------------------

    def exists(self) -> bool:
        """Return True if either representation is present."""
        return self.compressed_path.exists() or self.plain_path.exists()

    def _load_compressed(self) -> Any:
        raw = gzip.decompress(self.compressed_path.read_bytes())
        return json.loads(raw.decode("utf-8"))

    def _load_plain(self) -> Any:
        return json.loads(self.plain_path.read_text(encoding="utf-8"))

    def load(self) -> Result[Any, SnapshotNotFound]:
        """Load the snapshot document, preferring the compressed file.

        The returned document is *not* validated; it is whatever JSON value
        the file held.
        """
        if self.compressed_path.exists():
            try:
                doc = self._load_compressed()
            except (OSError, EOFError, zlib.error, UnicodeDecodeError, ValueError) as e:
                self._log.warning(
                    "Ignoring unreadable %s (%s); trying %s", COMPRESSED_NAME, e, PLAIN_NAME
                )
            else:
                self._log.debug("Loaded snapshot (compressed) from %s", self.compressed_path)
                return ok(doc)

        if self.plain_path.exists():
            try:
                doc = self._load_plain()
            except (OSError, UnicodeDecodeError, ValueError) as e:
                self._log.warning("Ignoring unreadable %s (%s)", PLAIN_NAME, e)
                return err(SnapshotNotFound(f"{PLAIN_NAME} is unreadable: {e}"))
            self._log.debug("Loaded snapshot (plain) from %s", self.plain_path)
            return ok(doc)

        if self.compressed_path.exists():
            return err(SnapshotNotFound(f"{COMPRESSED_NAME} is unreadable"))
        return err(SnapshotNotFound(f"no snapshot in {self.base_dir}"))

    # ------------------------------- Write ---------------------------------

    def save(self, snapshot: Any) -> None:
        """Write both representations of ``snapshot``.

        Raises
        ------
        SnapshotStoreError
            If either file cannot be written. A failure on the plain file
            leaves the already-replaced compressed file in place.
        """
        data = encode_snapshot(snapshot)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            _write_atomic(self.compressed_path, gzip.compress(data))
            _write_atomic(self.plain_path, data)
        except OSError as e:
            raise SnapshotStoreError(f"Could not save snapshot to {self.base_dir}: {e}") from e
        self._log.info("Snapshot saved (compressed + plain) to %s", self.base_dir)

    def compress(self) -> tuple[int, int]:
        """Rebuild the compressed file from the plain file.

        Returns
        -------
        tuple[int, int]
            ``(plain_bytes, compressed_bytes)``.
        """
        try:
            data = self.plain_path.read_bytes()
            packed = gzip.compress(data)
            _write_atomic(self.compressed_path, packed)
        except OSError as e:
            raise SnapshotStoreError(f"Could not compress {self.plain_path}: {e}") from e
        return len(data), len(packed)

    def decompress(self) -> int:
        """Rebuild the plain file from the compressed file; return its size."""
        try:
            data = gzip.decompress(self.compressed_path.read_bytes())
            _write_atomic(self.plain_path, data)
        except (OSError, EOFError, zlib.error) as e:
            raise SnapshotStoreError(f"Could not decompress {self.compressed_path}: {e}") from e
        return len(data)


__all__ = [
    "PLAIN_NAME",
    "COMPRESSED_NAME",
    "SnapshotNotFound",
    "SnapshotStore",
    "encode_snapshot",
]
