"""Runtime configuration for mqttdelta.

Configuration is read once at startup from a YAML file and validated with
pydantic. Any problem is reported as :class:`MqttDeltaConfigError` before a
single message is processed.

Example ``config.yml``::

    mqtt:
      broker: mqtt://localhost:1883
      username: user
      password: "secret"
      topic: sensors/living-room
      tls: false
    messageFiltering:
      condition:
        path: print.command
        value: push_status
    changeDetection:
      ignoredKeys: [timestamp]
      ignoredPaths: [device.battery]
    logging:
      level: info
      file: logs/mqtt-delta.log
"""

from __future__ import annotations

import copy
import logging as _stdlib_logging
import os
import secrets
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from mqttdelta.core.rules import FilterCondition, IgnoreRules
from mqttdelta.exceptions import MqttDeltaConfigError

DEFAULT_CONFIG_PATH = Path("config.yml")
DEFAULT_LOG_DIR = Path("logs")

#: Level names accepted in ``logging.level`` mapped to stdlib levels.
LOG_LEVELS: dict[str, int] = {
    "error": _stdlib_logging.ERROR,
    "warn": _stdlib_logging.WARNING,
    "warning": _stdlib_logging.WARNING,
    "info": _stdlib_logging.INFO,
    "http": _stdlib_logging.INFO,
    "verbose": _stdlib_logging.DEBUG,
    "debug": _stdlib_logging.DEBUG,
    "silly": _stdlib_logging.DEBUG,
}


def default_client_id() -> str:
    """Random client id, ``mqtt-delta-client-`` followed by six hex digits."""
    return f"mqtt-delta-client-{secrets.token_hex(3)}"


def default_log_filename(now: datetime | None = None) -> str:
    """Log file name stamped with the local start time."""
    moment = now or datetime.now()
    return moment.strftime("mqtt-delta-%Y-%m-%d-%H-%M-%S.log")


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MqttSettings(_ConfigModel):
    """Broker connection and subscription settings.

    Parameters
    ----------
    broker : str
        Broker URL, e.g. ``mqtt://localhost:1883`` or ``mqtts://host``.
    topic : str
        Topic (or topic filter) to subscribe to.
    username, password : str or None
        Broker credentials.
    client_id : str
        MQTT client id. Random when not configured.
    tls : bool
        Force TLS regardless of the broker URL scheme.
    keepalive : int
        MQTT keepalive in seconds.
    qos : int
        Subscription QoS (0-2).
    """

    broker: str
    topic: str
    username: str | None = None
    password: str | None = None
    client_id: str = Field(default_factory=default_client_id)
    tls: bool = False
    keepalive: int = Field(default=60, gt=0)
    qos: int = Field(default=0, ge=0, le=2)

    @field_validator("broker", "topic")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    @field_validator("client_id", mode="before")
    @classmethod
    def _client_id_default(cls, value: Any) -> Any:
        if value is None or value == "":
            return default_client_id()
        return value


class LoggingSettings(_ConfigModel):
    level: str = "info"
    file: Path = Field(default_factory=lambda: DEFAULT_LOG_DIR / default_log_filename())

    @field_validator("level", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> Any:
        if value is None:
            return "info"
        if not isinstance(value, str) or value.strip().lower() not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}; expected one of {sorted(LOG_LEVELS)}")
        return value.strip().lower()

    @field_validator("file", mode="before")
    @classmethod
    def _file_default(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_LOG_DIR / default_log_filename()
        return value

    @property
    def stdlib_level(self) -> int:
        return LOG_LEVELS[self.level]


class MessageFiltering(_ConfigModel):
    condition: FilterCondition = Field(default_factory=FilterCondition)

    @field_validator("condition", mode="before")
    @classmethod
    def _condition_default(cls, value: Any) -> Any:
        return {} if value is None else value


class DeltaConfig(_ConfigModel):
    """Complete process configuration."""

    mqtt: MqttSettings
    message_filtering: MessageFiltering = Field(default_factory=MessageFiltering)
    change_detection: IgnoreRules = Field(default_factory=IgnoreRules)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("message_filtering", "change_detection", "logging", mode="before")
    @classmethod
    def _section_default(cls, value: Any) -> Any:
        # A section header with nothing under it parses as None.
        return {} if value is None else value


_ENV_MQTT_MAP = {
    "MQTT_DELTA_BROKER": "broker",
    "MQTT_DELTA_USERNAME": "username",
    "MQTT_DELTA_PASSWORD": "password",
    "MQTT_DELTA_CLIENT_ID": "clientId",
    "MQTT_DELTA_TOPIC": "topic",
    # Parsed by pydantic: true/false, yes/no, on/off, 1/0.
    "MQTT_DELTA_TLS": "tls",
}

_ENV_LOGGING_MAP = {
    "MQTT_DELTA_LOG_LEVEL": "level",
    "MQTT_DELTA_LOG_FILE": "file",
}


def _section(data: dict[str, Any], name: str) -> dict[str, Any] | None:
    value = data.get(name)
    if value is None:
        value = {}
        data[name] = value
    return value if isinstance(value, dict) else None


def _apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> None:
    mqtt_overrides = {field: env[key] for key, field in _ENV_MQTT_MAP.items() if key in env}
    logging_overrides = {field: env[key] for key, field in _ENV_LOGGING_MAP.items() if key in env}

    if mqtt_overrides:
        section = _section(data, "mqtt")
        if section is not None:
            section.update(mqtt_overrides)

    if logging_overrides:
        section = _section(data, "logging")
        if section is not None:
            section.update(logging_overrides)


def build_config(raw: Mapping[str, Any], *, environ: Mapping[str, str] | None = None) -> DeltaConfig:
    """Validate an already-parsed configuration mapping.

    ``MQTT_DELTA_*`` environment variables take precedence over values in
    *raw*.
    """
    env = os.environ if environ is None else environ
    data = copy.deepcopy(dict(raw))
    _apply_env_overrides(data, env)
    try:
        return DeltaConfig.model_validate(data)
    except ValidationError as exc:
        raise MqttDeltaConfigError(f"Invalid configuration: {exc}") from exc


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> DeltaConfig:
    """Load and validate the YAML configuration file.

    The file is *path* if given, else ``$MQTT_DELTA_CONFIG``, else
    ``config.yml`` in the working directory.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get("MQTT_DELTA_CONFIG") or DEFAULT_CONFIG_PATH)

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MqttDeltaConfigError(f"Cannot read configuration file {config_path}: {exc}") from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise MqttDeltaConfigError(f"Configuration file {config_path} is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise MqttDeltaConfigError(f"Configuration file {config_path} must contain a mapping at the top level")
    return build_config(raw, environ=env)
