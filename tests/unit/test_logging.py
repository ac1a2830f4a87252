"""Unit tests for logging configuration."""

import io
import json
import logging

import pytest

from graceful_api.logging_config import (
    UVICORN_LOGGERS,
    CorrelationIdFilter,
    CustomJsonFormatter,
    correlation_id,
    setup_logging,
)


def make_record(msg="test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root():
    """Put the root logger back the way pytest left it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCorrelationIdFilter:
    """Correlation ID injection."""

    def test_adds_current_id(self):
        token = correlation_id.set("req-42")
        try:
            record = make_record()
            assert CorrelationIdFilter().filter(record) is True
            assert record.correlation_id == "req-42"
        finally:
            correlation_id.reset(token)

    def test_default_outside_request(self):
        record = make_record()
        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "-"


class TestCustomJsonFormatter:
    """JSON output shape."""

    def test_renames_standard_fields(self):
        formatter = CustomJsonFormatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s")
        parsed = json.loads(formatter.format(make_record(level=logging.WARNING, correlation_id="c")))

        assert parsed["message"] == "test message"
        assert parsed["level"] == "WARNING"
        assert "timestamp" in parsed
        assert "asctime" not in parsed
        assert "levelname" not in parsed

    def test_includes_extra_fields(self):
        formatter = CustomJsonFormatter(fmt="%(levelname)s %(message)s")
        record = make_record(correlation_id="c", open_connections=2, drain_timeout=120.0)

        parsed = json.loads(formatter.format(record))

        assert parsed["open_connections"] == 2
        assert parsed["drain_timeout"] == 120.0

    def test_correlation_id_always_present(self):
        formatter = CustomJsonFormatter(fmt="%(levelname)s %(message)s")
        parsed = json.loads(formatter.format(make_record()))
        assert parsed["correlation_id"] == "-"


class TestSetupLogging:
    """Handler installation."""

    def test_single_handler_on_root(self, restore_root):
        restore_root.addHandler(logging.StreamHandler())
        setup_logging(log_level="DEBUG", json_format=True)

        assert restore_root.level == logging.DEBUG
        assert len(restore_root.handlers) == 1
        handler = restore_root.handlers[0]
        assert isinstance(handler.formatter, CustomJsonFormatter)
        assert any(isinstance(f, CorrelationIdFilter) for f in handler.filters)

    def test_plain_text_format(self, restore_root):
        setup_logging(log_level="INFO", json_format=False)
        formatter = restore_root.handlers[0].formatter
        assert not isinstance(formatter, CustomJsonFormatter)

    def test_uvicorn_loggers_propagate(self, restore_root):
        logging.getLogger("uvicorn.error").addHandler(logging.NullHandler())
        setup_logging()

        for name in UVICORN_LOGGERS:
            uvicorn_logger = logging.getLogger(name)
            assert uvicorn_logger.handlers == []
            assert uvicorn_logger.propagate is True


class TestJsonOutput:
    """A full record through handler, filter and formatter."""

    def test_line_is_parseable(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(CustomJsonFormatter(fmt="%(levelname)s %(correlation_id)s %(message)s"))
        handler.addFilter(CorrelationIdFilter())

        logger = logging.getLogger("test.json.output")
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        token = correlation_id.set("drain-abc")
        try:
            logger.info("All active connections closed, exiting")
        finally:
            correlation_id.reset(token)

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["correlation_id"] == "drain-abc"
        assert parsed["message"] == "All active connections closed, exiting"
