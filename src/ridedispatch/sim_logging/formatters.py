"""Formatters for dispatch log lines.

Both formatters carry the ride context that ``log_ride_context`` puts on
records and the emitting thread's name, which separates simulation ticks
from API request handling.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

CONTEXT_FIELDS = ("ride_id", "driver_id", "user_id", "correlation_id")

# Set by DefaultCorrelationFilter on records logged outside a ride.
NO_CORRELATION = "-"


def context_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Ride context fields present on ``record``, in CONTEXT_FIELDS order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's creation time."""

    def __init__(self, environment: str = "development", service: str = "ridedispatch"):
        super().__init__()
        self.environment = environment
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
            "service": self.service,
            "env": self.environment,
        }
        entry.update(context_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Single readable line with ride tags such as ``[ride=R-1000 driver=D-1001]``.

    Tags are left out for records logged outside a ride, and the correlation
    id is shown only when it differs from the ride id.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(threadName)s %(name)s%(ride_tags)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        fields = context_fields(record)
        correlation = fields.pop("correlation_id", NO_CORRELATION)
        if correlation not in (NO_CORRELATION, fields.get("ride_id")):
            fields["correlation"] = correlation

        tags = " ".join(f"{name.removesuffix('_id')}={value}" for name, value in fields.items())
        record.ride_tags = f" [{tags}]" if tags else ""
        return super().format(record)
