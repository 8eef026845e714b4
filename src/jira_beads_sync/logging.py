"""Structured logging configuration.

Uses standard library logging with either a JSON formatter or a plain text
formatter. Logs go to stderr; stdout is reserved for command output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: set[str] = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s%(context)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """A minimal JSON formatter for logging records."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = _extra_fields(record)
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with `extra` fields appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        extra = _extra_fields(record)
        record.context = (
            " (" + ", ".join(f"{k}={v}" for k, v in extra.items()) + ")" if extra else ""
        )
        try:
            return super().format(record)
        finally:
            del record.context


def configure_logging(level: str, fmt: str = "text") -> None:
    """Configure root logging once per process."""

    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # requests' connection pool is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.INFO))
