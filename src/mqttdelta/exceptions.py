"""Custom exception hierarchy for mqttdelta."""

from __future__ import annotations


class MqttDeltaError(Exception):
    """Base exception for all mqttdelta errors."""


class MqttDeltaConfigError(MqttDeltaError):
    """Invalid or missing configuration.

    Raised at startup, before any message is processed. Never retried.
    """


class MqttDeltaPayloadError(MqttDeltaError):
    """Inbound MQTT payload could not be decoded into a JSON value."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class MqttDeltaConnectionError(MqttDeltaError):
    """Initial connection to the MQTT broker failed."""

    def __init__(self, message: str, *, host: str = "", port: int | None = None) -> None:
        self.host = host
        self.port = port
        super().__init__(message)
