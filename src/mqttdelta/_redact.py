"""Helpers for safe logging.

The configuration carries broker credentials and inbound payloads can be
large or binary. Both pass through here before reaching a log line.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_CREDENTIAL_KEYS: frozenset[str] = frozenset({"password"})

#: Default cap for payload previews in error logs.
MAX_PAYLOAD_PREVIEW = 512


def redact_config(dumped: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a dumped configuration with broker credentials masked.

    Unset credentials stay ``None`` so the log still shows whether one was
    configured.
    """
    redacted: dict[str, Any] = {}
    for key, value in dumped.items():
        if isinstance(value, Mapping):
            redacted[key] = redact_config(value)
        elif key in _CREDENTIAL_KEYS and value is not None:
            redacted[key] = "<redacted>"
        else:
            redacted[key] = value
    return redacted


def preview_payload(payload: bytes, *, max_string: int = MAX_PAYLOAD_PREVIEW) -> str:
    """Printable, bounded rendering of a raw MQTT payload."""
    text = payload.decode("utf-8", errors="replace")
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated {len(payload)}b>"
    return text
