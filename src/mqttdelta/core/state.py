"""The single diff baseline.

The holder has exactly one writer: the routine that processes messages.
It does no locking of its own; hosts that handle messages in parallel must
serialise calls to :meth:`Baseline.consume`.
"""

from __future__ import annotations

from typing import Any

from mqttdelta.core.values import MISSING, Value


class Baseline:
    """Holds the most recently accepted message.

    The message is kept by reference and replaced wholesale on every
    :meth:`consume`; it must not be mutated after being handed over.
    """

    def __init__(self, value: Any = MISSING) -> None:
        self._value = value

    @property
    def value(self) -> Any:
        """The current baseline, or :data:`MISSING` before the first message."""
        return self._value

    @property
    def has_baseline(self) -> bool:
        """Whether the next message can be diffed.

        A held JSON null gives the diff nothing to compare against, so the
        message after it seeds the baseline again.
        """
        return self._value is not MISSING and self._value is not None

    def consume(self, current: Value) -> Any:
        """Replace the baseline with *current* and return the previous one."""
        previous = self._value
        self._value = current
        return previous

    def reset(self) -> None:
        self._value = MISSING
