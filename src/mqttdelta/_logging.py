"""Console and file logging setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from mqttdelta.config import LoggingSettings

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> Path:
    """Send log records to stdout and to ``settings.file``.

    Both handlers share the ``[timestamp] message`` layout. The log directory
    is created when missing. Returns the log file path.
    """
    log_file = settings.file
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_file, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.stdlib_level,
        handlers=handlers,
        force=True,
    )
    return log_file
