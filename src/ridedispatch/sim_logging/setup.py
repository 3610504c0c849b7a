"""Root logger wiring for the dispatch service."""

import logging
import sys
from collections.abc import Mapping
from typing import TextIO

from .context import ContextFilter
from .filters import DefaultCorrelationFilter, PIIFilter
from .formatters import DevFormatter, JSONFormatter

# Minimum levels for chatty third-party loggers.
QUIET_LOGGERS: dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "websockets": logging.INFO,
}


def build_handler(
    json_output: bool = False,
    environment: str = "development",
    stream: TextIO | None = None,
) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter(environment) if json_output else DevFormatter())

    handler.addFilter(PIIFilter())
    # Context first so a ride's correlation_id wins over the "-" default.
    handler.addFilter(ContextFilter())
    handler.addFilter(DefaultCorrelationFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    environment: str = "development",
    quiet: Mapping[str, int] | None = None,
) -> logging.Handler:
    """Route every record through one stdout handler on the root logger.

    Handlers already on the root logger are replaced, so calling this twice
    does not duplicate lines. ``quiet`` is merged over QUIET_LOGGERS.
    Raises ValueError for an unknown level name.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = build_handler(json_output, environment)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name, floor in {**QUIET_LOGGERS, **(quiet or {})}.items():
        logging.getLogger(name).setLevel(floor)

    return handler
