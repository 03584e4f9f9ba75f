"""``mqtt-delta`` command: log only what changed between consecutive messages."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Callable, Sequence
from typing import Any

from mqttdelta._logging import configure_logging
from mqttdelta._mqtt import DeltaMqttRuntime
from mqttdelta._redact import redact_config
from mqttdelta.config import DeltaConfig, load_config
from mqttdelta.core.processor import DeltaProcessor, format_changes
from mqttdelta.core.values import Value
from mqttdelta.exceptions import MqttDeltaConfigError, MqttDeltaConnectionError

_LOG = logging.getLogger("mqttdelta")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mqtt-delta",
        description="Subscribe to an MQTT topic and log only the fields that changed.",
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to the YAML configuration (default: $MQTT_DELTA_CONFIG or ./config.yml).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs regardless of the configured level.",
    )
    return parser.parse_args(argv)


def make_message_handler(
    processor: DeltaProcessor,
    logger: logging.Logger = _LOG,
) -> Callable[[str, Value], None]:
    """Build the runtime callback that diffs a message and logs its changes."""

    def handle(topic: str, message: Value) -> None:
        result = processor.process(message)
        if result is None:
            return
        if result.seeded:
            logger.debug("Baseline established from topic=%s", topic)
            return
        if result.reportable:
            logger.info(format_changes(result.changes))

    return handle


def run(config: DeltaConfig, stop_event: threading.Event) -> None:
    """Process messages until *stop_event* is set."""
    processor = DeltaProcessor(
        config.change_detection,
        config.message_filtering.condition,
        logger=_LOG,
    )
    runtime = DeltaMqttRuntime(
        config.mqtt,
        on_message=make_message_handler(processor),
        logger=_LOG,
    )
    runtime.start()
    try:
        while not stop_event.wait(1.0):
            pass
    finally:
        _LOG.info("Disconnecting from MQTT broker...")
        runtime.stop()
        _LOG.info("Disconnected from MQTT broker")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        config = load_config(args.config)
    except MqttDeltaConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    log_file = configure_logging(config.logging, verbose=args.verbose)
    _LOG.debug("Writing log to %s", log_file)
    _LOG.debug("Loaded configuration %s", redact_config(config.model_dump(mode="json", by_alias=True)))

    stop_event = threading.Event()

    def stop_handler(_signum: int, _frame: Any) -> None:
        stop_event.set()

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    try:
        run(config, stop_event)
    except (MqttDeltaConfigError, MqttDeltaConnectionError) as exc:
        _LOG.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
