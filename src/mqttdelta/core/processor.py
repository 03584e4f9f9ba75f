"""Gate, diff and baseline update for one inbound message."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from mqttdelta.core.diff import compute_changes
from mqttdelta.core.gate import admit
from mqttdelta.core.rules import FilterCondition, IgnoreRules
from mqttdelta.core.state import Baseline
from mqttdelta.core.values import Value


@dataclass(frozen=True)
class DeltaResult:
    """Outcome of diffing one admitted message."""

    changes: Any
    seeded: bool

    @property
    def reportable(self) -> bool:
        """Whether the change set should be emitted.

        The first message only establishes the baseline, and an empty change
        set carries nothing to report.
        """
        return not self.seeded and bool(self.changes)


def format_changes(changes: Any) -> str:
    """Compact JSON text for a change set, keys in message order."""
    return json.dumps(changes, ensure_ascii=False, separators=(",", ":"))


class DeltaProcessor:
    """Runs each inbound message through the gate, the diff and the baseline.

    Messages must be fed one at a time, in arrival order.
    """

    def __init__(
        self,
        rules: IgnoreRules | None = None,
        condition: FilterCondition | None = None,
        *,
        baseline: Baseline | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._rules = rules or IgnoreRules()
        self._condition = condition or FilterCondition()
        self._baseline = baseline if baseline is not None else Baseline()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def baseline(self) -> Baseline:
        return self._baseline

    def process(self, message: Value) -> DeltaResult | None:
        """Diff *message* against the baseline.

        Returns ``None`` when the message is rejected by the filter condition;
        the baseline is left untouched in that case.
        """
        if not admit(message, self._condition):
            self._logger.debug(
                "Message skipped by filter path=%s expected=%r",
                self._condition.path,
                self._condition.value,
            )
            return None

        seeded = not self._baseline.has_baseline
        previous = self._baseline.value
        changes = compute_changes(
            previous,
            message,
            self._rules.ignored_keys,
            self._rules.ignored_paths,
        )
        self._baseline.consume(message)
        return DeltaResult(changes=changes, seeded=seeded)
