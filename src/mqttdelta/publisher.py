"""``mqtt-delta-publish`` command: publish a short scripted sensor sequence.

Useful to check a running ``mqtt-delta`` end to end. The second message
changes ``temperature`` and ``device.battery``; the third changes
``humidity`` and ``status``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any

from mqttdelta._logging import configure_logging
from mqttdelta._mqtt import ClientFactory, build_client, connect_client, parse_broker
from mqttdelta.config import MqttSettings, load_config
from mqttdelta.exceptions import MqttDeltaConfigError, MqttDeltaConnectionError

_LOG = logging.getLogger("mqttdelta.publisher")

SAMPLE_MESSAGES: tuple[dict[str, Any], ...] = (
    {
        "temperature": 22.5,
        "humidity": 45,
        "status": "normal",
        "device": {"id": "sensor-01", "battery": 98, "location": "living-room"},
    },
    {
        "temperature": 23.1,
        "humidity": 45,
        "status": "normal",
        "device": {"id": "sensor-01", "battery": 97, "location": "living-room"},
    },
    {
        "temperature": 23.1,
        "humidity": 47,
        "status": "warning",
        "device": {"id": "sensor-01", "battery": 97, "location": "living-room"},
    },
)

CONNECT_TIMEOUT = 10.0


def publish_samples(
    settings: MqttSettings,
    *,
    messages: Sequence[Any] = SAMPLE_MESSAGES,
    interval: float = 2.0,
    logger: logging.Logger = _LOG,
    client_factory: ClientFactory = build_client,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Publish *messages* to ``settings.topic``, *interval* seconds apart.

    Returns the number of messages published.
    """
    address = parse_broker(settings.broker, force_tls=settings.tls)
    client = client_factory(settings, address, logger=logger)
    connected = threading.Event()

    def on_connect(_client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connect failed: %s", reason_code)
            return
        connected.set()

    client.on_connect = on_connect
    connect_client(client, address, keepalive=settings.keepalive)
    client.loop_start()
    try:
        if not connected.wait(CONNECT_TIMEOUT):
            raise MqttDeltaConnectionError(
                f"Broker {address.host}:{address.port} did not accept the connection",
                host=address.host,
                port=address.port,
            )
        logger.info("Connected to MQTT broker at %s", settings.broker)

        for index, message in enumerate(messages):
            if index:
                sleep(interval)
            logger.info("Publishing message %d of %d...", index + 1, len(messages))
            info = client.publish(settings.topic, json.dumps(message), qos=settings.qos)
            info.wait_for_publish(CONNECT_TIMEOUT)

        logger.info("Test completed. Disconnecting...")
    finally:
        client.disconnect()
        client.loop_stop()
    return len(messages)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mqtt-delta-publish",
        description="Publish three sample sensor messages to the configured topic.",
    )
    parser.add_argument("--config", "-c", help="Path to the YAML configuration.")
    parser.add_argument("--interval", type=float, default=2.0, help="Seconds between messages.")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = load_config(args.config)
    except MqttDeltaConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    configure_logging(config.logging, verbose=args.verbose)
    try:
        publish_samples(config.mqtt, interval=args.interval)
    except (MqttDeltaConfigError, MqttDeltaConnectionError) as exc:
        _LOG.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
