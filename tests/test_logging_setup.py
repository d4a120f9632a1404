"""
Tests for logging_setup module.

Verifies:
- JSON structured logging format
- Component and severity tagging
- Session ID correlation
- PII-aware logging helpers
- Log level configuration
"""
import json
import logging
from io import StringIO
from datetime import datetime

import pytest

import logging_setup
from logging_setup import (
    setup_logging,
    setup_logging_from_env,
    get_logger,
    Component,
    JSONFormatter,
)


@pytest.fixture
def capture_logs():
    """Capture log output to a string buffer."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(JSONFormatter())

    logger = logging.getLogger()
    logger.handlers = []
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield buffer

    logger.handlers = []


def _entries(buffer):
    return [json.loads(line) for line in buffer.getvalue().strip().split("\n") if line]


def test_json_formatter_basic(capture_logs):
    logger = get_logger(Component.GATEWAY)
    logger.info("Connection accepted", remote="10.0.0.1")

    [entry] = _entries(capture_logs)
    assert entry["severity"] == "info"
    assert entry["component"] == "gateway"
    assert entry["message"] == "Connection accepted"
    assert entry["remote"] == "10.0.0.1"
    assert "timestamp" in entry


def test_json_formatter_timestamp_format(capture_logs):
    get_logger(Component.COMPLETION).info("Timestamp test")

    [entry] = _entries(capture_logs)
    dt = datetime.fromisoformat(entry["timestamp"].replace("Z", "+00:00"))
    assert dt.tzinfo is not None


def test_session_id_correlation(capture_logs):
    get_logger(Component.SESSION, session_id="session_123").info("Session test")

    [entry] = _entries(capture_logs)
    assert entry["session_id"] == "session_123"


def test_session_id_absent_when_not_provided(capture_logs):
    get_logger(Component.PROMPT).info("No session")

    [entry] = _entries(capture_logs)
    assert "session_id" not in entry


def test_with_session_binds_session_and_keeps_component(capture_logs):
    base_logger = get_logger(Component.SESSION)
    session_logger = base_logger.with_session("demo_1700000000000")
    session_logger.info("With session")

    [entry] = _entries(capture_logs)
    assert entry["session_id"] == "demo_1700000000000"
    assert entry["component"] == "session"
    assert session_logger.logger.name == base_logger.logger.name


def test_pii_logging(capture_logs):
    """Transcript and suggestion text go under a separate pii field."""
    logger = get_logger(Component.SESSION, session_id="s1")
    logger.info_pii("Generating suggestion", transcript="We need a faster onboarding")

    [entry] = _entries(capture_logs)
    assert entry["pii"] == {"transcript": "We need a faster onboarding"}
    assert "transcript" not in entry
    assert entry["message"] == "Generating suggestion"


def test_pii_keyword_on_regular_methods(capture_logs):
    get_logger(Component.SESSION).error("Failed to parse model output", reason="invalid JSON", pii={"raw": "not json"})

    [entry] = _entries(capture_logs)
    assert entry["severity"] == "error"
    assert entry["reason"] == "invalid JSON"
    assert entry["pii"]["raw"] == "not json"


def test_severity_levels(capture_logs):
    logger = get_logger(Component.STREAMER)

    logger.debug("Debug message")
    logger.info("Info message")
    logger.warning("Warning message")
    logger.error("Error message")
    logger.critical("Critical message")

    severities = [e["severity"] for e in _entries(capture_logs)]
    assert severities == ["debug", "info", "warning", "error", "critical"]


def test_component_enum():
    assert Component.GATEWAY.value == "gateway"
    assert Component.SESSION.value == "session"
    assert Component.PROMPT.value == "prompt"
    assert Component.COMPLETION.value == "completion"
    assert Component.STREAMER.value == "streamer"
    assert Component.EVENT_STORE.value == "event_store"
    assert Component.AUTH.value == "auth"


def test_component_string_fallback(capture_logs):
    get_logger("custom_component").info("Test")

    [entry] = _entries(capture_logs)
    assert entry["component"] == "custom_component"


def test_multiple_extra_fields(capture_logs):
    get_logger(Component.COMPLETION).info(
        "Completion received",
        model="gpt-4o-mini",
        latency_ms=812,
        cached=False,
        usage={"total_tokens": 120},
    )

    [entry] = _entries(capture_logs)
    assert entry["model"] == "gpt-4o-mini"
    assert entry["latency_ms"] == 812
    assert entry["cached"] is False
    assert entry["usage"] == {"total_tokens": 120}


def test_non_serializable_extra_is_stringified(capture_logs):
    get_logger(Component.GATEWAY).info("Odd value", value=object())

    [entry] = _entries(capture_logs)
    assert isinstance(entry["value"], str)


def test_setup_logging_json():
    setup_logging(level="DEBUG", use_json=True)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)


def test_setup_logging_text():
    setup_logging(level="INFO", use_json=False)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.INFO
    assert len(root_logger.handlers) == 1
    assert not isinstance(root_logger.handlers[0].formatter, JSONFormatter)


def test_exception_logging(capture_logs):
    logger = get_logger(Component.EVENT_STORE)

    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("Exception occurred")

    [entry] = _entries(capture_logs)
    assert "ValueError: Test exception" in entry["exception"]


def test_debug_pii_method(capture_logs):
    get_logger(Component.COMPLETION).debug_pii("Model output", raw='{"suggestion": "x"}')

    [entry] = _entries(capture_logs)
    assert entry["severity"] == "debug"
    assert entry["pii"]["raw"] == '{"suggestion": "x"}'


def test_bind_adds_fields_to_every_record(capture_logs):
    logger = get_logger(Component.COMPLETION).bind(model="gpt-4o-mini").with_session("s1")
    logger.info("First")
    logger.bind(attempt=1).info("Second")

    first, second = _entries(capture_logs)
    assert first["model"] == "gpt-4o-mini"
    assert first["session_id"] == "s1"
    assert second["model"] == "gpt-4o-mini"
    assert second["attempt"] == 1


def test_pii_redaction(capture_logs, monkeypatch):
    monkeypatch.setattr(logging_setup, "_log_pii", False)

    get_logger(Component.SESSION).info_pii("Generating suggestion", transcript="Our budget is 40k")

    [entry] = _entries(capture_logs)
    assert entry["pii"] == {"transcript": logging_setup.REDACTED}
    assert "40k" not in capture_logs.getvalue()


def test_disabled_level_is_not_emitted(capture_logs):
    logging.getLogger().setLevel(logging.WARNING)

    get_logger(Component.STREAMER).info("Hidden")
    get_logger(Component.STREAMER).warning("Shown")

    assert [e["message"] for e in _entries(capture_logs)] == ["Shown"]


def test_setup_logging_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("LOG_FORMAT", "text")
    monkeypatch.setenv("LOG_PII", "false")

    setup_logging_from_env()

    root_logger = logging.getLogger()
    assert root_logger.level == logging.WARNING
    assert not isinstance(root_logger.handlers[0].formatter, JSONFormatter)
    assert logging_setup._log_pii is False
    setup_logging()
    assert logging_setup._log_pii is True
