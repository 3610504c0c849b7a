"""Tests for logging context managers."""

import json
import logging
import threading

import pytest

from ridedispatch.sim_logging import (
    ContextFilter,
    DefaultCorrelationFilter,
    JSONFormatter,
    LogContext,
    log_context,
    log_ride_context,
)


@pytest.mark.unit
class TestLogContext:
    """Tests for log_context and log_ride_context."""

    @pytest.fixture
    def logger(self):
        logger = logging.getLogger("test.ridedispatch.context")
        logger.setLevel(logging.DEBUG)
        return logger

    @pytest.fixture
    def captured_records(self, logger):
        """Capture log records with the same filter order as setup_logging."""
        records: list[logging.LogRecord] = []

        class RecordCapture(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                records.append(record)

        handler = RecordCapture()
        handler.addFilter(ContextFilter())
        handler.addFilter(DefaultCorrelationFilter())
        logger.addHandler(handler)
        yield records
        logger.removeHandler(handler)

    def test_fields_are_added_to_records(self, logger, captured_records):
        with log_context(driver_id="D-1", user_id="user-1"):
            logger.info("Test message")

        record = captured_records[0]
        assert record.driver_id == "D-1"
        assert record.user_id == "user-1"

    def test_fields_removed_after_exit(self, logger, captured_records):
        with log_context(driver_id="D-1"):
            pass
        logger.info("after")

        assert not hasattr(captured_records[0], "driver_id")
        assert captured_records[0].correlation_id == "-"

    def test_nested_contexts_restore_outer_values(self, logger, captured_records):
        with log_context(user_id="outer"):
            with log_context(user_id="inner", driver_id="D-1"):
                logger.info("inner")
            logger.info("outer")

        assert captured_records[0].user_id == "inner"
        assert captured_records[1].user_id == "outer"
        assert not hasattr(captured_records[1], "driver_id")

    def test_ride_context_uses_ride_id_as_correlation_id(self, logger, captured_records):
        with log_ride_context("R-1000", driver_id="D-1"):
            logger.info("ride event")

        record = captured_records[0]
        assert record.ride_id == "R-1000"
        assert record.correlation_id == "R-1000"
        assert record.driver_id == "D-1"

    def test_explicit_correlation_id_wins(self, logger, captured_records):
        with log_ride_context("R-1000", correlation_id="req-42"):
            logger.info("ride event")

        assert captured_records[0].correlation_id == "req-42"

    def test_extra_fields_are_not_overwritten(self, logger, captured_records):
        with log_context(ride_id="R-1"):
            logger.info("explicit", extra={"ride_id": "R-2"})

        assert captured_records[0].ride_id == "R-2"

    def test_context_is_thread_local(self):
        seen: list[dict] = []

        with log_context(ride_id="R-main"):
            worker = threading.Thread(target=lambda: seen.append(dict(LogContext.get())))
            worker.start()
            worker.join()

        assert seen == [{}]


@pytest.mark.unit
def test_json_formatter_includes_context_fields():
    record = logging.LogRecord("ridedispatch.test", logging.INFO, "x.py", 1, "hello", (), None)
    record.ride_id = "R-1"
    record.correlation_id = "R-1"

    data = json.loads(JSONFormatter(environment="test").format(record))

    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["env"] == "test"
    assert data["ride_id"] == "R-1"
    assert "driver_id" not in data
