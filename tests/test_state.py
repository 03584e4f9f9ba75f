from __future__ import annotations

from mqttdelta.core.state import Baseline
from mqttdelta.core.values import MISSING


def test_starts_without_baseline() -> None:
    baseline = Baseline()

    assert baseline.value is MISSING
    assert not baseline.has_baseline


def test_consume_returns_previous_and_replaces_value() -> None:
    baseline = Baseline()

    assert baseline.consume({"a": 1}) is MISSING
    assert baseline.consume({"a": 2}) == {"a": 1}
    assert baseline.value == {"a": 2}
    assert baseline.has_baseline


def test_held_null_is_not_a_baseline() -> None:
    baseline = Baseline()
    baseline.consume(None)

    assert baseline.value is None
    assert not baseline.has_baseline


def test_deeply_nested_message_is_held_as_is() -> None:
    message: list[object] = []
    for _ in range(950):
        message = [message]
    baseline = Baseline()

    baseline.consume(message)

    assert baseline.value is message


def test_reset_clears_baseline() -> None:
    baseline = Baseline({"a": 1})
    baseline.reset()

    assert baseline.value is MISSING
