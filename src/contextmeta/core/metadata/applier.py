"""
Delta applier: pure mapping ``(snapshot, delta) -> snapshot'``.

Path resolution
---------------
``delta.field`` is split on ``"."``.

- A single segment (``"sessionHistory"``) addresses a top-level key.
- Otherwise the first segment names the root sub-document (``"essential"``
  in ``"essential.projects"``), the middle segments descend one level each,
  and the last segment is the mutation target. A missing or non-object
  container on the way is replaced by an empty object.

Declared roots are listed in :data:`KNOWN_ROOTS`. An undeclared root is still
resolved (as a top-level sub-document) but logged, since it usually means a
caller typo.

Operations
----------
- ``set``    : target := value.
- ``add``    : list target -> append; numeric target with numeric value ->
  accumulate; anything else -> assignment. Callers must initialize a field
  with the right type before relying on append or increment.
- ``remove`` : delete the target key if present.
- anything else : no-op.

Both :func:`apply_delta` and :func:`fold` deep-copy their input; the caller's
snapshot is never mutated.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any, NamedTuple

from contextmeta.core.contracts.delta import Delta, DeltaOp
from contextmeta.core.contracts.snapshot import Snapshot
from contextmeta.core.metadata.schema import default_snapshot
from contextmeta.core.settings import get_logger

KNOWN_ROOTS = frozenset({"essential", "sessionHistory"})

logger = get_logger("contextmeta.applier")


class FieldPath(NamedTuple):
    """A resolved delta target: ``root`` sub-document, ``parents`` below it, ``key``."""

    root: str | None
    parents: tuple[str, ...]
    key: str


def resolve_path(field: str) -> FieldPath:
    """Split a dotted ``field`` into its root, intermediate keys and target key."""
    segments = field.split(".")
    if len(segments) == 1:
        return FieldPath(None, (), segments[0])
    return FieldPath(segments[0], tuple(segments[1:-1]), segments[-1])


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _container(doc: dict[str, Any], path: FieldPath) -> dict[str, Any]:
    """Walk to the parent object of ``path.key``, creating objects as needed."""
    keys = path.parents if path.root is None else (path.root, *path.parents)
    target = doc
    for key in keys:
        nxt = target.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            target[key] = nxt
        target = nxt
    return target


def _apply_in_place(doc: dict[str, Any], delta: Delta) -> None:
    path = resolve_path(delta.field)
    if path.root is not None and path.root not in KNOWN_ROOTS:
        logger.warning("Delta field %r uses undeclared root %r", delta.field, path.root)

    match delta.op:
        case DeltaOp.SET:
            _container(doc, path)[path.key] = copy.deepcopy(delta.value)
        case DeltaOp.ADD:
            parent = _container(doc, path)
            current = parent.get(path.key)
            if isinstance(current, list):
                current.append(copy.deepcopy(delta.value))
            elif _is_number(current) and _is_number(delta.value):
                parent[path.key] = current + delta.value
            else:
                parent[path.key] = copy.deepcopy(delta.value)
        case DeltaOp.REMOVE:
            _container(doc, path).pop(path.key, None)
        case _:
            logger.warning("Skipping delta with unknown op %r on %r", delta.op, delta.field)


def apply_delta(snapshot: Snapshot, delta: Delta) -> Snapshot:
    """Return a new snapshot with ``delta`` applied. Never raises."""
    doc = copy.deepcopy(snapshot)
    _apply_in_place(doc, delta)
    return doc


def fold(snapshot: Any, deltas: Iterable[Delta]) -> Snapshot:
    """Left-fold ``deltas`` over ``snapshot``.

    A non-object starting document is replaced by the default snapshot, so the
    result is always an object (though not necessarily schema-valid).
    """
    if isinstance(snapshot, dict):
        doc: Snapshot = copy.deepcopy(snapshot)
    else:
        doc = default_snapshot()
    for delta in deltas:
        _apply_in_place(doc, delta)
    return doc


__all__ = ["KNOWN_ROOTS", "FieldPath", "resolve_path", "apply_delta", "fold"]
