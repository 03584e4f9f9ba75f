"""Admission filter applied before a message is compared."""

from __future__ import annotations

from typing import Any

from mqttdelta.core.rules import FilterCondition
from mqttdelta.core.values import MISSING, Value, is_container, resolve, value_kind


def strict_equals(left: Any, right: Any) -> bool:
    """Primitive strict equality.

    Unlike the diff, this does not go through the canonical encoding:
    ``True`` never equals ``1``, ``"1"`` never equals ``1``, absent equals
    nothing, and sequences or mappings never compare equal.
    """
    if left is MISSING or right is MISSING:
        return False
    if is_container(left) or is_container(right):
        return False
    if value_kind(left) != value_kind(right):
        return False
    return bool(left == right)


def admit(current: Value, condition: FilterCondition) -> bool:
    """Return ``True`` when *current* should be diffed against the baseline."""
    if not condition.enabled:
        return True
    return strict_equals(resolve(current, condition.path), condition.value)
