"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from attempt_guard.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture() -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_credentials_of_guarded_operation_are_redacted(capture) -> None:
    logger, stream = capture

    logger.info(
        "password_reset.failed",
        extra={
            "email": "jane@example.com",
            "reset_code": "483920",
            "password": "hunter2",
            "action_type": "forgotPassword",
        },
    )

    output = stream.getvalue()
    assert "jane@example.com" not in output
    assert "483920" not in output
    assert "hunter2" not in output
    assert "[REDACTED]" in output
    assert "forgotPassword" in output


def test_limiter_fields_pass_through(capture) -> None:
    logger, stream = capture

    logger.warning(
        "attempt_limiter.blocked",
        extra={"action_type": "login", "attempts": 5, "wait_time_minutes": 1},
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "attempt_limiter.blocked"
    assert payload["level"] == "warning"
    assert payload["attempts"] == 5
    assert payload["wait_time_minutes"] == 1
    assert "[REDACTED]" not in stream.getvalue()


def test_nested_sensitive_fields_are_redacted(capture) -> None:
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={"headers": {"x-api-key": "secret-key", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_request_id_from_context_is_attached(capture) -> None:
    logger, stream = capture

    set_request_id("req-123")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"
