"""Structured logging with correlation IDs.

Every HTTP request runs under a correlation ID (taken from the
``X-Correlation-ID`` header or generated) so that the log lines of one
connect request can be grouped. Records are emitted as one JSON object per
line; device and event-bus context passed through ``extra=`` is copied into
the entry.
"""

import contextvars
import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, TextIO

NO_CORRELATION_ID = "no-correlation-id"

correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

# Attributes passed via ``extra=`` that end up in JSON entries
_EXTRA_FIELDS = (
    "device_id",
    "device_name",
    "host",
    "port",
    "outcome",
    "error_kind",
    "subscription_id",
    "event_type",
    "event_level",
    "subscriber_count",
    "dropped_count",
    "duration_ms",
)

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(correlation_id)s - %(message)s"

# Chatty libraries kept at WARNING regardless of the configured level
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "sse_starlette")


def get_correlation_id() -> str:
    """Return the current correlation ID, generating one if unset."""
    correlation_id = correlation_id_var.get()
    if not correlation_id:
        correlation_id = uuid.uuid4().hex
        correlation_id_var.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    The previous value is restored on exit, so IDs never leak from one
    request into work scheduled after it.

    Example:
        with correlation_scope(request.headers.get("X-Correlation-ID")) as cid:
            response = await call_next(request)
    """
    token = correlation_id_var.set(correlation_id or uuid.uuid4().hex)
    try:
        yield correlation_id_var.get() or NO_CORRELATION_ID
    finally:
        correlation_id_var.reset(token)


class CorrelationIDFilter(logging.Filter):
    """Stamp every record with the active correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or NO_CORRELATION_ID  # type: ignore[attr-defined]
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Fields: timestamp (record creation time, UTC), level, component (logger
    name), message, correlation_id, any known ``extra`` attributes, and
    exception/stack text when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
        }

        log_entry.update(
            {name: getattr(record, name) for name in _EXTRA_FIELDS if hasattr(record, name)}
        )

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_entry["stack_info"] = record.stack_info

        # datetimes and enums in extras
        return json.dumps(log_entry, default=str)


def _handler(
    target: logging.Handler,
    level: str,
    formatter: logging.Formatter,
    correlation_filter: logging.Filter,
) -> logging.Handler:
    target.setLevel(level)
    target.addFilter(correlation_filter)
    target.setFormatter(formatter)
    return target


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging for the dashboard process.

    Replaces existing root handlers. Console output goes to ``stream``
    (stderr by default) as JSON or as plain text; the optional log file is
    always JSON. Python warnings (e.g. the lab encryption key notice) are
    routed into logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON console output instead of plain text
        log_file: Optional path of a JSON log file
        stream: Console stream
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    correlation_filter = CorrelationIDFilter()
    console_formatter: logging.Formatter = (
        JSONFormatter()
        if json_format
        else logging.Formatter(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    root_logger.addHandler(
        _handler(
            logging.StreamHandler(stream or sys.stderr),
            level,
            console_formatter,
            correlation_filter,
        )
    )

    if log_file:
        root_logger.addHandler(
            _handler(logging.FileHandler(log_file), level, JSONFormatter(), correlation_filter)
        )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.captureWarnings(True)

    root_logger.info(
        "Logging configured",
        extra={"level": level, "json_format": json_format, "log_file": log_file},
    )


__all__ = [
    "NO_CORRELATION_ID",
    "CorrelationIDFilter",
    "JSONFormatter",
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
    "setup_logging",
]
