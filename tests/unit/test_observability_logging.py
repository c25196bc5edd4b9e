"""Tests for structured logging utilities."""

import io
import json
import logging
import sys
import warnings
from datetime import UTC, datetime
from pathlib import Path

import pytest

from mikrotik_dashboard.infra.observability.logging import (
    CorrelationIDFilter,
    JSONFormatter,
    correlation_id_var,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level
    yield root_logger
    for handler in list(root_logger.handlers):
        if handler not in original_handlers:
            handler.close()
    root_logger.handlers = original_handlers
    root_logger.setLevel(original_level)
    logging.captureWarnings(False)


def _record(msg: str = "hello", level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="mikrotik_dashboard.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


def test_correlation_id_generation_and_override() -> None:
    """Correlation IDs should be generated and overridable."""
    cid1 = get_correlation_id()
    assert cid1
    assert get_correlation_id() == cid1

    set_correlation_id("fixed-id")
    assert get_correlation_id() == "fixed-id"


def test_json_formatter_includes_known_extra_fields() -> None:
    formatter = JSONFormatter()
    record = _record()
    record.device_id = "dev-1"
    record.device_name = "core-router"
    record.outcome = "failure"
    record.error_kind = "connection"
    record.correlation_id = "cid-123"
    record.unrelated = "ignored"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["component"] == "mikrotik_dashboard.test"
    assert payload["correlation_id"] == "cid-123"
    assert payload["device_id"] == "dev-1"
    assert payload["device_name"] == "core-router"
    assert payload["outcome"] == "failure"
    assert payload["error_kind"] == "connection"
    assert "unrelated" not in payload


def test_json_formatter_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        exc = sys.exc_info()

    payload = json.loads(JSONFormatter().format(_record("failed", logging.ERROR, exc)))

    assert payload["level"] == "ERROR"
    assert "ValueError: boom" in payload["exception"]


def test_correlation_filter_injects_placeholder() -> None:
    """CorrelationIDFilter should attach a placeholder when none is set."""
    record = _record()

    assert CorrelationIDFilter().filter(record) is True
    assert record.correlation_id


def test_setup_logging_json_console(monkeypatch: pytest.MonkeyPatch, restore_root_logger) -> None:
    stream = io.StringIO()
    monkeypatch.setattr("sys.stderr", stream)

    setup_logging(level="INFO", json_format=True)
    logging.getLogger("test_setup_logging").info("test message", extra={"device_id": "devX"})

    payload = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert payload["message"] == "test message"
    assert payload["device_id"] == "devX"
    assert "correlation_id" in payload


def test_setup_logging_quiets_library_loggers(restore_root_logger) -> None:
    setup_logging(level="DEBUG", json_format=True)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_plain_text_format(
    monkeypatch: pytest.MonkeyPatch, restore_root_logger
) -> None:
    """Non-JSON mode should still include correlation ID in output."""
    stream = io.StringIO()
    monkeypatch.setattr("sys.stderr", stream)

    set_correlation_id("plain-cid")
    setup_logging(level="DEBUG", json_format=False)
    logging.getLogger("plain").debug("plain message")

    last_line = stream.getvalue().strip().splitlines()[-1]
    assert "plain message" in last_line
    assert "plain-cid" in last_line


def test_setup_logging_file_handler(tmp_path: Path, restore_root_logger) -> None:
    """File handler should emit JSON formatted entries."""
    log_file = tmp_path / "log.json"

    setup_logging(level="INFO", json_format=False, log_file=str(log_file))
    logging.getLogger("filetest").info("file message", extra={"subscription_id": "sub-1"})
    for handler in restore_root_logger.handlers:
        handler.flush()

    payload = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert payload["message"] == "file message"
    assert payload["subscription_id"] == "sub-1"
    assert payload.get("correlation_id")


def test_correlation_scope_restores_previous_id() -> None:
    set_correlation_id("outer")

    with correlation_scope("req-1") as cid:
        assert cid == "req-1"
        assert get_correlation_id() == "req-1"

    assert correlation_id_var.get() == "outer"


def test_correlation_scope_generates_id_when_header_missing() -> None:
    with correlation_scope(None) as first, correlation_scope("") as second:
        assert first
        assert second
        assert first != second


def test_json_formatter_uses_record_creation_time() -> None:
    record = _record()
    record.created = datetime(2024, 5, 1, 12, 30, tzinfo=UTC).timestamp()

    payload = json.loads(JSONFormatter().format(record))

    assert payload["timestamp"] == "2024-05-01T12:30:00+00:00"


def test_setup_logging_explicit_stream_and_warnings(restore_root_logger) -> None:
    stream = io.StringIO()

    setup_logging(level="INFO", json_format=True, stream=stream)
    with warnings.catch_warnings():
        warnings.simplefilter("always")
        warnings.warn("lab encryption key in use", UserWarning, stacklevel=1)

    components = [json.loads(line)["component"] for line in stream.getvalue().splitlines()]
    assert "py.warnings" in components
    assert logging.getLogger("sse_starlette").level == logging.WARNING
