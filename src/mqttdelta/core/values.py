"""Structured JSON values: variant tags, path lookup and canonical encoding."""

from __future__ import annotations

import enum
import json
from typing import Any, Final, TypeAlias, cast

Value: TypeAlias = None | bool | int | float | str | list["Value"] | dict[str, "Value"]


class _Missing(enum.Enum):
    MISSING = "MISSING"

    def __repr__(self) -> str:
        return "<MISSING>"


MISSING: Final = _Missing.MISSING
"""Marker for an absent value. Distinct from ``None``, which is JSON null."""

# Not valid JSON, so it can never collide with the encoding of a real value.
_MISSING_ENCODING: Final = "<absent>"


class ValueKind(enum.StrEnum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def value_kind(value: Value) -> ValueKind:
    """Return the variant tag of *value*.

    ``bool`` is checked before numbers because it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.SEQUENCE
    if isinstance(value, dict):
        return ValueKind.MAPPING
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


_CONTAINER_KINDS: Final = frozenset({ValueKind.SEQUENCE, ValueKind.MAPPING})


def is_container(value: Value | _Missing) -> bool:
    """True for sequences and mappings, the kinds the diff descends into."""
    return value is not MISSING and value_kind(value) in _CONTAINER_KINDS


def children(value: Value | _Missing) -> dict[str, Value]:
    """Return the keyed view of a container.

    Mappings are returned as-is. Sequences are keyed by their positional
    index rendered as a string, so ``["a", "b"]`` becomes ``{"0": "a", "1": "b"}``.
    Everything else has no children.
    """
    if value is MISSING:
        return {}
    kind = value_kind(value)
    if kind == ValueKind.MAPPING:
        return cast(dict[str, Value], value)
    if kind == ValueKind.SEQUENCE:
        return {str(index): item for index, item in enumerate(cast(list[Value], value))}
    return {}


def resolve(value: Value, path: str) -> Value | _Missing:
    """Look up a dot-delimited *path* inside *value*.

    Each segment is a mapping key. Sequences are never indexed, so
    ``"items.0"`` is absent even when ``items`` is a non-empty list. An empty
    path resolves to :data:`MISSING`.
    """
    if not path:
        return MISSING

    current: Value = value
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def _canonical(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        # JSON has a single number type: 1 and 1.0 are the same number.
        return int(value)
    if isinstance(value, dict):
        return {key: _canonical(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_canonical(item) for item in value]
    return value


def canonical_encoding(value: Value | _Missing) -> str:
    """Deterministic compact JSON encoding of *value*.

    Mapping keys keep their insertion order; two mappings holding the same
    pairs in a different order encode differently.
    """
    if value is MISSING:
        return _MISSING_ENCODING
    return json.dumps(_canonical(value), ensure_ascii=False, separators=(",", ":"))
