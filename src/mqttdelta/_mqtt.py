"""MQTT transport: broker parsing, payload decoding and the threaded runtime."""

from __future__ import annotations

import json
import logging
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import paho.mqtt.client as mqtt

from mqttdelta._redact import preview_payload
from mqttdelta.config import MqttSettings
from mqttdelta.core.values import Value
from mqttdelta.exceptions import MqttDeltaConfigError, MqttDeltaConnectionError, MqttDeltaPayloadError

# scheme -> (default port, tls, paho transport)
_SCHEMES: dict[str, tuple[int, bool, str]] = {
    "mqtt": (1883, False, "tcp"),
    "tcp": (1883, False, "tcp"),
    "mqtts": (8883, True, "tcp"),
    "ssl": (8883, True, "tcp"),
    "tls": (8883, True, "tcp"),
    "ws": (80, False, "websockets"),
    "wss": (443, True, "websockets"),
}


@dataclass(frozen=True)
class BrokerAddress:
    """Where and how to reach the broker."""

    host: str
    port: int
    tls: bool
    transport: str = "tcp"
    path: str = "/mqtt"


def parse_broker(raw_broker: str, *, force_tls: bool = False) -> BrokerAddress:
    """Split a broker URL such as ``mqtts://host:8883`` into its parts.

    A bare ``host`` or ``host:port`` is treated as ``mqtt://``.
    """
    value = raw_broker.strip()
    if not value:
        raise MqttDeltaConfigError("Broker value is empty")

    scheme = "mqtt"
    if "://" in value:
        scheme, value = value.split("://", 1)
        scheme = scheme.lower()
    if scheme not in _SCHEMES:
        raise MqttDeltaConfigError(f"Unsupported broker scheme {scheme!r} in {raw_broker!r}")
    default_port, tls, transport = _SCHEMES[scheme]

    path = "/mqtt"
    if "/" in value:
        value, _, rest = value.partition("/")
        if rest:
            path = f"/{rest}"

    host, separator, maybe_port = value.rpartition(":")
    if separator and maybe_port.isdigit():
        port = int(maybe_port)
    else:
        host, port = value, default_port
    if not host:
        raise MqttDeltaConfigError(f"Broker host missing in {raw_broker!r}")

    return BrokerAddress(host=host, port=port, tls=tls or force_tls, transport=transport, path=path)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def decode_payload(payload: bytes, *, topic: str = "") -> Value:
    """Decode a UTF-8 JSON payload.

    Raises :class:`MqttDeltaPayloadError` for anything that is not strict JSON
    (``NaN`` and ``Infinity`` included) or that nests deeper than the
    decoder can follow.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MqttDeltaPayloadError("MQTT payload is not valid UTF-8", topic=topic) from exc
    try:
        decoded: Value = json.loads(text, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise MqttDeltaPayloadError("MQTT payload is nested too deeply", topic=topic) from exc
    except ValueError as exc:
        raise MqttDeltaPayloadError(f"MQTT payload is not valid JSON: {exc}", topic=topic) from exc
    return decoded


def build_client(
    settings: MqttSettings,
    address: BrokerAddress,
    *,
    logger: logging.Logger | None = None,
) -> mqtt.Client:
    """Create a paho client configured for *address* but not yet connected.

    With TLS enabled the broker certificate is not verified.
    """
    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=settings.client_id,
        protocol=mqtt.MQTTv311,
        transport=address.transport,
    )
    client.enable_logger(logger or logging.getLogger(__name__))
    if settings.username is not None:
        client.username_pw_set(settings.username, settings.password)
    if address.transport == "websockets":
        client.ws_set_options(path=address.path)
    if address.tls:
        client.tls_set(cert_reqs=ssl.CERT_NONE)
        client.tls_insecure_set(True)
    return client


ClientFactory = Callable[..., Any]


def connect_client(client: Any, address: BrokerAddress, *, keepalive: int) -> None:
    """Open the network connection, wrapping socket errors."""
    try:
        client.connect(address.host, address.port, keepalive=keepalive)
    except OSError as exc:
        raise MqttDeltaConnectionError(
            f"Cannot connect to MQTT broker {address.host}:{address.port}: {exc}",
            host=address.host,
            port=address.port,
        ) from exc


class DeltaMqttRuntime:
    """Threaded paho-mqtt runtime that hands decoded JSON messages to a callback.

    paho runs every callback on its single network thread, so messages reach
    ``on_message`` one at a time and in arrival order.
    """

    def __init__(
        self,
        settings: MqttSettings,
        *,
        on_message: Callable[[str, Value], None],
        logger: logging.Logger | None = None,
        client_factory: ClientFactory = build_client,
    ) -> None:
        self._settings = settings
        self._on_message_cb = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client_factory = client_factory
        self._client: Any = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self) -> None:
        """Connect, start the network loop and subscribe once connected."""
        self.stop()
        address = parse_broker(self._settings.broker, force_tls=self._settings.tls)
        self._logger.info("Connecting to MQTT broker at %s", self._settings.broker)
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s tls=%s transport=%s client_id=%s",
            address.host,
            address.port,
            address.tls,
            address.transport,
            self._settings.client_id,
        )

        client = self._client_factory(self._settings, address, logger=self._logger)
        client.on_connect = self._on_connect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        connect_client(client, address, keepalive=self._settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def handle_payload(self, topic: str, payload: bytes) -> None:
        """Decode one inbound payload and pass it on.

        Undecodable payloads are logged and dropped without reaching the
        callback.
        """
        try:
            message = decode_payload(payload, topic=topic)
        except MqttDeltaPayloadError as exc:
            self._logger.error("Error processing message on %s: %s", topic, exc)
            self._logger.info("Raw message: %s", preview_payload(payload))
            return

        self._logger.debug("Received PUBLISH topic=%s bytes=%d", topic, len(payload))
        try:
            self._on_message_cb(topic, message)
        except Exception:
            self._logger.exception("Error processing message on %s", topic)

    def _on_connect(self, client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            self._logger.error("MQTT connect failed: %s", reason_code)
            return
        self._logger.info("Connected to MQTT broker")
        # Subscribing here renews the subscription after every automatic reconnect.
        client.subscribe(self._settings.topic, qos=self._settings.qos)

    def _on_subscribe(self, _client: Any, _userdata: Any, _mid: int, reason_codes: Any, _properties: Any) -> None:
        failures = [code for code in reason_codes if code.is_failure]
        if failures:
            self._logger.error("Error subscribing to topic %s: %s", self._settings.topic, failures[0])
        else:
            self._logger.info("Subscribed to topic successfully")

    def _on_message(self, _client: Any, _userdata: Any, msg: Any) -> None:
        self.handle_payload(msg.topic, msg.payload)

    def _on_disconnect(self, _client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            self._logger.warning("MQTT disconnected: %s", reason_code)
        self._logger.info("Connection to MQTT broker closed")
