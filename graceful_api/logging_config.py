"""Logging configuration: JSON or plain text, tagged with a correlation ID."""

import logging
import sys
from contextvars import ContextVar
from pythonjsonlogger.json import JsonFormatter as BaseJsonFormatter

# Correlation ID of the request being handled in the current task
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="-")

# uvicorn configures nothing itself (log_config=None); its records reach our handler
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        return True


class CustomJsonFormatter(BaseJsonFormatter):
    """JSON formatter using ``timestamp`` and ``level`` field names."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if "asctime" in log_record:
            log_record["timestamp"] = log_record.pop("asctime")
        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        if "correlation_id" not in log_record:
            log_record["correlation_id"] = correlation_id.get()


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output human-readable lines
    """
    logger = logging.getLogger()
    logger.setLevel(log_level.upper())
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level.upper())

    if json_format:
        formatter = CustomJsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    logger.addHandler(handler)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True
