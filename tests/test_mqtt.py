from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest

from mqttdelta._mqtt import BrokerAddress, DeltaMqttRuntime, decode_payload, parse_broker
from mqttdelta.config import MqttSettings
from mqttdelta.exceptions import MqttDeltaConfigError, MqttDeltaConnectionError, MqttDeltaPayloadError

OK = SimpleNamespace(is_failure=False, value=0)
REFUSED = SimpleNamespace(is_failure=True, value=135)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("mqtt://broker.local:1884", BrokerAddress("broker.local", 1884, False)),
        ("mqtt://broker.local", BrokerAddress("broker.local", 1883, False)),
        ("tcp://10.0.0.2", BrokerAddress("10.0.0.2", 1883, False)),
        ("mqtts://broker.local", BrokerAddress("broker.local", 8883, True)),
        ("ssl://broker.local:9999", BrokerAddress("broker.local", 9999, True)),
        ("broker.local", BrokerAddress("broker.local", 1883, False)),
        ("broker.local:2000", BrokerAddress("broker.local", 2000, False)),
        ("ws://broker.local:8080/ws", BrokerAddress("broker.local", 8080, False, "websockets", "/ws")),
        ("wss://broker.local", BrokerAddress("broker.local", 443, True, "websockets", "/mqtt")),
    ],
)
def test_parse_broker(raw: str, expected: BrokerAddress) -> None:
    assert parse_broker(raw) == expected


def test_parse_broker_tls_flag_forces_tls() -> None:
    address = parse_broker("mqtt://broker.local:1883", force_tls=True)

    assert address.tls
    assert address.port == 1883


@pytest.mark.parametrize("raw", ["", "   ", "http://broker.local", "mqtt://:1883"])
def test_parse_broker_rejects_bad_values(raw: str) -> None:
    with pytest.raises(MqttDeltaConfigError):
        parse_broker(raw)


def test_decode_payload_returns_json_value() -> None:
    assert decode_payload(b'{"a": [1, null, "\xc3\xa9"]}') == {"a": [1, None, "é"]}
    assert decode_payload(b"42") == 42


@pytest.mark.parametrize("payload", [b"not json", b"\xff\xfe", b'{"a": NaN}', b""])
def test_decode_payload_rejects_malformed(payload: bytes) -> None:
    with pytest.raises(MqttDeltaPayloadError):
        decode_payload(payload, topic="sensors/x")


@dataclass
class FakeClient:
    connect_error: Exception | None = None
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    on_connect: Any = None
    on_subscribe: Any = None
    on_message: Any = None
    on_disconnect: Any = None

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        self.calls.append(("connect", host, port, keepalive))
        if self.connect_error is not None:
            raise self.connect_error

    def loop_start(self) -> None:
        self.calls.append(("loop_start",))

    def loop_stop(self) -> None:
        self.calls.append(("loop_stop",))

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.calls.append(("subscribe", topic, qos))


def _settings(**overrides: Any) -> MqttSettings:
    values: dict[str, Any] = {"broker": "mqtt://broker.local:1883", "topic": "sensors/#", "client_id": "test"}
    values.update(overrides)
    return MqttSettings(**values)


def _runtime(client: FakeClient, received: list[tuple[str, Any]], **overrides: Any) -> DeltaMqttRuntime:
    return DeltaMqttRuntime(
        _settings(**overrides),
        on_message=lambda topic, message: received.append((topic, message)),
        client_factory=lambda settings, address, logger=None: client,
    )


def test_runtime_start_connects_and_subscribes_on_connect() -> None:
    client = FakeClient()
    runtime = _runtime(client, [], keepalive=30, qos=1)

    runtime.start()
    assert runtime.is_running
    assert client.calls == [("connect", "broker.local", 1883, 30), ("loop_start",)]

    client.on_connect(client, None, None, OK, None)
    assert client.calls[-1] == ("subscribe", "sensors/#", 1)

    runtime.stop()
    assert not runtime.is_running
    assert client.calls[-2:] == [("disconnect",), ("loop_stop",)]


def test_runtime_does_not_subscribe_when_connect_refused(caplog: pytest.LogCaptureFixture) -> None:
    client = FakeClient()
    runtime = _runtime(client, [])
    runtime.start()

    with caplog.at_level(logging.ERROR):
        client.on_connect(client, None, None, REFUSED, None)

    assert not any(call[0] == "subscribe" for call in client.calls)
    assert "MQTT connect failed" in caplog.text


def test_runtime_wraps_connection_errors() -> None:
    client = FakeClient(connect_error=ConnectionRefusedError("refused"))
    runtime = _runtime(client, [])

    with pytest.raises(MqttDeltaConnectionError) as exc_info:
        runtime.start()

    assert exc_info.value.host == "broker.local"
    assert exc_info.value.port == 1883
    assert not runtime.is_running


def test_runtime_logs_subscription_outcome(caplog: pytest.LogCaptureFixture) -> None:
    client = FakeClient()
    runtime = _runtime(client, [])
    runtime.start()

    with caplog.at_level(logging.INFO):
        client.on_subscribe(client, None, 1, [OK], None)
        client.on_subscribe(client, None, 2, [REFUSED], None)

    assert "Subscribed to topic successfully" in caplog.text
    assert "Error subscribing to topic sensors/#" in caplog.text


def test_runtime_delivers_decoded_messages() -> None:
    received: list[tuple[str, Any]] = []
    client = FakeClient()
    runtime = _runtime(client, received)
    runtime.start()

    client.on_message(client, None, SimpleNamespace(topic="sensors/a", payload=b'{"t": 1}'))

    assert received == [("sensors/a", {"t": 1})]


def test_runtime_drops_undecodable_payloads(caplog: pytest.LogCaptureFixture) -> None:
    received: list[tuple[str, Any]] = []
    runtime = _runtime(FakeClient(), received)

    with caplog.at_level(logging.INFO):
        runtime.handle_payload("sensors/a", b"{broken")

    assert received == []
    assert "Error processing message on sensors/a" in caplog.text
    assert "Raw message: {broken" in caplog.text


def test_runtime_survives_callback_errors(caplog: pytest.LogCaptureFixture) -> None:
    def explode(_topic: str, _message: Any) -> None:
        raise RuntimeError("boom")

    runtime = DeltaMqttRuntime(_settings(), on_message=explode, client_factory=lambda *a, **k: FakeClient())

    with caplog.at_level(logging.ERROR):
        runtime.handle_payload("sensors/a", b"{}")

    assert "boom" in caplog.text


def test_runtime_logs_connection_close(caplog: pytest.LogCaptureFixture) -> None:
    client = FakeClient()
    runtime = _runtime(client, [])
    runtime.start()

    with caplog.at_level(logging.INFO):
        client.on_disconnect(client, None, None, OK, None)

    assert "Connection to MQTT broker closed" in caplog.text


DEEP_PAYLOAD = b"[" * 100_000 + b"]" * 100_000


def test_decode_payload_rejects_excessive_nesting() -> None:
    with pytest.raises(MqttDeltaPayloadError, match="nested too deeply"):
        decode_payload(DEEP_PAYLOAD, topic="sensors/x")


def test_runtime_drops_excessively_nested_payloads(caplog: pytest.LogCaptureFixture) -> None:
    received: list[tuple[str, Any]] = []
    client = FakeClient()
    runtime = _runtime(client, received)
    runtime.start()

    with caplog.at_level(logging.ERROR):
        client.on_message(client, None, SimpleNamespace(topic="sensors/a", payload=DEEP_PAYLOAD))

    assert received == []
    assert "nested too deeply" in caplog.text

    client.on_message(client, None, SimpleNamespace(topic="sensors/a", payload=b'{"t": 2}'))
    assert received == [("sensors/a", {"t": 2})]
