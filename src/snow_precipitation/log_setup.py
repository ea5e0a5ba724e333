"""Logging setup for the API process and command-line execution."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .models import Coordinate
from .redaction import sanitize_for_logging, sanitize_text

# Record attributes copied into the JSON event when passed via `extra=`.
CONTEXT_FIELDS = ("request_id", "lat", "lon", "station_id", "provider", "status", "context")


class JsonConsoleFormatter(logging.Formatter):
    """One JSON object per line, with request context when the caller supplies it."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        context = {
            field: getattr(record, field)
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        }
        if context:
            event["context"] = sanitize_for_logging(context)
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def request_context(
    request_id: int | None = None,
    coord: Coordinate | None = None,
    station_id: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """`extra=` mapping for log calls tied to one series request."""
    context: dict[str, Any] = {"request_id": request_id, "station_id": station_id, **extra}
    if coord is not None:
        context["lat"] = round(coord.lat, 4)
        context["lon"] = round(coord.lon, 4)
    return {key: value for key, value in context.items() if value is not None}


def setup_logger(
    name: str = "snow_precipitation", level: int | str = logging.INFO
) -> logging.Logger:
    """Create and configure a process-wide logger."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonConsoleFormatter())
    logger.addHandler(handler)
    return logger
