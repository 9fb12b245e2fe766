"""contextmeta: a snapshot + delta-journal store for coding-session metadata.

The package persists a small metadata document (last session, stack, projects,
session counters and history) as a base snapshot plus an append-only journal
of deltas that is periodically compacted back into the snapshot.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.2.0"
