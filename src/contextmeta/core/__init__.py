"""Core package for contextmeta.

Settings and logging live in :mod:`contextmeta.core.settings`; the storage
engine lives under :mod:`contextmeta.core.metadata`.
"""

from __future__ import annotations

__all__ = ["__doc__"]
