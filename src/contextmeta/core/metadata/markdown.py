"""Seed snapshot values from a markdown session-context file.

Older setups kept session context only as ``SESSION_CONTEXT_COMPLETE.md``
with bold-label lines such as::

    **Session Date**: 2026-01-17
    **User Stack**: Node.js + npm + Vite
    **User Projects**: iron-tracker, toku-tracker

:func:`extract_metadata` lifts those three values into a default snapshot.
Labels that are absent leave the defaults untouched.
"""

from __future__ import annotations

import re

from contextmeta.core.clock import Clock, utc_now
from contextmeta.core.contracts.snapshot import Snapshot
from contextmeta.core.metadata.schema import default_snapshot
from contextmeta.core.settings import DEFAULT_STACK

SESSION_CONTEXT_NAME = "SESSION_CONTEXT_COMPLETE.md"

_STACK_RE = re.compile(r"\*\*User Stack\*\*:\s*([^\n]+)")
_PROJECTS_RE = re.compile(r"\*\*User Projects\*\*:\s*([^\n]+)")
_DATE_RE = re.compile(r"\*\*Session Date\*\*:\s*([^\n]+)")


def extract_metadata(
    content: str, *, default_stack: str = DEFAULT_STACK, clock: Clock = utc_now
) -> Snapshot:
    """Return a snapshot populated from the labels found in ``content``."""
    snapshot = default_snapshot(default_stack=default_stack, clock=clock)
    essential = snapshot["essential"]

    if m := _STACK_RE.search(content):
        essential["stack"] = m.group(1).strip()
    if m := _PROJECTS_RE.search(content):
        essential["projects"] = [p.strip() for p in m.group(1).split(",") if p.strip()]
    if m := _DATE_RE.search(content):
        essential["lastSession"] = m.group(1).strip()

    return snapshot


__all__ = ["SESSION_CONTEXT_NAME", "extract_metadata"]
