"""Recursive structural diff between two consecutive messages.

Semantics worth knowing before changing anything here:

* Only keys of the *current* message are visited. A key that disappeared
  since the previous message is never reported.
* Sequences are walked like mappings keyed by positional index, so a
  reordered or truncated list yields per-index entries rather than a
  whole-list replacement.
* Leaf equality uses :func:`canonical_encoding`, which is sensitive to the
  key order of nested mappings.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Any

from mqttdelta.core.matching import is_suppressed
from mqttdelta.core.values import MISSING, Value, canonical_encoding, children, is_container


def compute_changes(
    previous: Any,
    current: Value,
    ignored_keys: Collection[str] = frozenset(),
    ignored_paths: Sequence[str] = (),
    path_prefix: str = "",
) -> Any:
    """Return the fields of *current* that differ from *previous*.

    When *previous* is ``None`` or :data:`MISSING` there is no baseline and
    *current* is returned unchanged. Callers decide whether that seed result
    is worth reporting.

    Parameters
    ----------
    previous : Value or MISSING
        The baseline message, or nothing on the first call.
    current : Value
        The newly received message.
    ignored_keys : collection of str
        Key names skipped at any depth.
    ignored_paths : sequence of str
        Dot-delimited subtrees skipped entirely.
    path_prefix : str
        Dot path of *current* within the top-level message.
    """
    if previous is None or previous is MISSING:
        return current

    changes: dict[str, Value] = {}
    before = children(previous)

    for key, value in children(current).items():
        if key in ignored_keys:
            continue

        property_path = f"{path_prefix}.{key}" if path_prefix else key
        if is_suppressed(property_path, ignored_paths):
            continue

        old = before.get(key, MISSING)
        if is_container(value) and is_container(old):
            nested = compute_changes(old, value, ignored_keys, ignored_paths, property_path)
            if nested:
                changes[key] = nested
        elif canonical_encoding(value) != canonical_encoding(old):
            changes[key] = value

    return changes
