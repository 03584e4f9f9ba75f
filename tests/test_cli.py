from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mqttdelta.cli import main, make_message_handler
from mqttdelta.core.processor import DeltaProcessor
from mqttdelta.core.rules import FilterCondition, IgnoreRules
from mqttdelta.publisher import SAMPLE_MESSAGES

_LOGGER = logging.getLogger("mqttdelta.test")


def test_handler_logs_only_reportable_changes(caplog: pytest.LogCaptureFixture) -> None:
    handle = make_message_handler(DeltaProcessor(), _LOGGER)

    with caplog.at_level(logging.INFO, logger="mqttdelta.test"):
        for message in SAMPLE_MESSAGES:
            handle("sensors/a", message)
        handle("sensors/a", SAMPLE_MESSAGES[-1])

    assert [record.getMessage() for record in caplog.records] == [
        '{"temperature":23.1,"device":{"battery":97}}',
        '{"humidity":47,"status":"warning"}',
    ]


def test_handler_respects_filter_and_rules(caplog: pytest.LogCaptureFixture) -> None:
    processor = DeltaProcessor(
        IgnoreRules(ignored_keys={"temperature"}),
        FilterCondition(path="status", value="normal"),
    )
    handle = make_message_handler(processor, _LOGGER)

    with caplog.at_level(logging.INFO, logger="mqttdelta.test"):
        for message in SAMPLE_MESSAGES:
            handle("sensors/a", message)

    # The third message has status "warning" and is filtered out.
    assert [record.getMessage() for record in caplog.records] == ['{"device":{"battery":97}}']


def test_main_returns_2_on_config_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--config", str(tmp_path / "missing.yml")]) == 2
    assert "Configuration error" in capsys.readouterr().err
