"""Tests for global exception handlers.

Validates that all exception types are handled consistently with proper HTTP
status codes, error format, and no information leakage.
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from attempt_guard.core.errors import (
    ActionBlockedAppError,
    AuthenticationAppError,
    MalformedRecordAppError,
    PersistenceAppError,
    ValidationAppError,
)
from attempt_guard.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


@pytest.mark.parametrize(
    ("error", "expected_status"),
    [
        (ValidationAppError(code="bad_input", message="Bad input"), 400),
        (AuthenticationAppError(code="invalid_api_key", message="Nope"), 403),
        (PersistenceAppError(code="store_read_failed", message="Disk error"), 503),
        (MalformedRecordAppError(code="malformed_attempt_record", message="Garbage"), 503),
        (ActionBlockedAppError(code="action_blocked", message="Wait"), 429),
    ],
)
def test_app_errors_map_to_status(
    app_with_handlers: FastAPI, client: TestClient, error, expected_status: int
) -> None:
    @app_with_handlers.get("/boom")
    async def boom():
        raise error

    resp = client.get("/boom")

    assert resp.status_code == expected_status
    body = resp.json()["error"]
    assert body["code"] == error.code
    assert body["message"] == error.message
    assert "request_id" in body


def test_blocked_error_sets_retry_headers(app_with_handlers: FastAPI, client: TestClient) -> None:
    @app_with_handlers.get("/blocked")
    async def blocked():
        raise ActionBlockedAppError(
            code="action_blocked",
            message="Wait",
            details={"retry_after": 42, "attempts": 6, "wait_time_minutes": 2},
        )

    resp = client.get("/blocked")

    assert resp.headers["Retry-After"] == "42"
    assert resp.headers["X-Attempts-Count"] == "6"
    assert resp.headers["X-Attempts-Wait-Minutes"] == "2"
    assert resp.json()["error"]["details"]["retry_after"] == 42


@patch("attempt_guard.core.exception_handlers.settings")
def test_retry_headers_can_be_disabled(
    mock_settings, app_with_handlers: FastAPI, client: TestClient
) -> None:
    mock_settings.app.include_retry_headers = False

    @app_with_handlers.get("/blocked")
    async def blocked():
        raise ActionBlockedAppError(code="action_blocked", message="Wait", details={"retry_after": 1})

    resp = client.get("/blocked")

    assert resp.status_code == 429
    assert "Retry-After" not in resp.headers


def test_unexpected_error_returns_generic_500(app_with_handlers: FastAPI, client: TestClient) -> None:
    @app_with_handlers.get("/crash")
    async def crash():
        raise RuntimeError("secret internal detail")

    resp = client.get("/crash")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_server_error"
    assert "secret internal detail" not in resp.text
