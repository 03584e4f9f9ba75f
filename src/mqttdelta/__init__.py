"""mqttdelta - log only what changed between consecutive MQTT JSON messages."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mqtt-delta")
except PackageNotFoundError:
    __version__ = "0+local"
from mqttdelta.config import DeltaConfig, LoggingSettings, MqttSettings, load_config
from mqttdelta.core.diff import compute_changes
from mqttdelta.core.gate import admit
from mqttdelta.core.matching import is_suppressed
from mqttdelta.core.processor import DeltaProcessor, DeltaResult, format_changes
from mqttdelta.core.rules import FilterCondition, IgnoreRules
from mqttdelta.core.state import Baseline
from mqttdelta.core.values import MISSING, Value, ValueKind, canonical_encoding, resolve, value_kind
from mqttdelta.exceptions import (
    MqttDeltaConfigError,
    MqttDeltaConnectionError,
    MqttDeltaError,
    MqttDeltaPayloadError,
)

__all__ = [
    "__version__",
    "MISSING",
    "Baseline",
    "DeltaConfig",
    "DeltaProcessor",
    "DeltaResult",
    "FilterCondition",
    "IgnoreRules",
    "LoggingSettings",
    "MqttDeltaConfigError",
    "MqttDeltaConnectionError",
    "MqttDeltaError",
    "MqttDeltaPayloadError",
    "MqttSettings",
    "Value",
    "ValueKind",
    "admit",
    "canonical_encoding",
    "compute_changes",
    "format_changes",
    "is_suppressed",
    "load_config",
    "resolve",
    "value_kind",
]
