"""Path-prefix suppression rules."""

from __future__ import annotations

from collections.abc import Iterable


def is_suppressed(candidate_path: str, ignored_paths: Iterable[str]) -> bool:
    """Return ``True`` when *candidate_path* lies in an ignored subtree.

    A rule ``"device.battery"`` matches ``"device.battery"`` itself and every
    path below it (``"device.battery.level"``), but not ``"device.battery_pct"``
    or ``"backup.battery"``.
    """
    return any(
        candidate_path == ignored or candidate_path.startswith(f"{ignored}.")
        for ignored in ignored_paths
    )
