"""Logging configuration."""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

PLAIN_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit structured JSON lines instead of plain text
    """
    if json_output:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            PLAIN_FORMAT,
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    # paho logs every packet at DEBUG
    logging.getLogger("paho").setLevel(logging.WARNING)
