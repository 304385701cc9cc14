"""
JSON log output.

Each record becomes a single JSON object on stdout. Fields passed through
``extra=`` are copied next to the standard ones, and the request's
correlation id is attached when a request is in flight.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from voicecall.shared.correlation import get_correlation_id

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_NOISY_LOGGERS = ("httpx", "httpcore", "python_multipart", "python_multipart.multipart")


class StructuredFormatter(logging.Formatter):
    """Render records as one-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            entry[key if key not in entry else f"extra_{key}"] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Module logger; output goes through the root handler from ``setup_logging``."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    return logger


def setup_logging(level: str | None = None) -> None:
    """Install the JSON handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or LOG_LEVEL).upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def mask(value: str, keep: int = 6) -> str:
    """Mask a credential for log output."""
    if not value:
        return ""
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}***"


def preview(text: str, limit: int = 100) -> str:
    """Shorten user text for log lines."""
    return text if len(text) <= limit else f"{text[:limit]}..."
