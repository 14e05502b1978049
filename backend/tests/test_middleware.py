"""
Tests for middleware components.

This module tests:
- RequestIDMiddleware (correlation ID tracking)
- LoggingMiddleware (request/response logging)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import uuid
from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.core.logging_config import request_id_var
from app.middleware.logging import LoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware


def build_app(with_logging: bool = False) -> FastAPI:
    app = FastAPI()
    if with_logging:
        app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request):
        return {"request_id": request.state.request_id, "context_id": request_id_var.get()}

    @app.get("/api/v1/health")
    async def health():
        return {"status": "ok"}

    @app.get("/boom")
    async def boom():
        raise ValueError("Test exception")

    return app


def completion_extra(mock_logger, level="info"):
    calls = [
        call for call in getattr(mock_logger, level).call_args_list
        if "Request completed" in str(call)
    ]
    assert calls, "no completion log line"
    return calls[0].kwargs.get("extra", {})


class TestRequestIDMiddleware:
    """Tests for request ID correlation middleware."""

    def test_request_id_generated_when_missing(self):
        """
        Test that request ID is generated when not provided.

        Arrange: FastAPI app with RequestIDMiddleware
        Act: Make request without X-Request-ID header
        Assert: Response has X-Request-ID header with valid UUID
        """
        # Arrange
        client = TestClient(build_app())

        # Act
        response = client.get("/test")

        # Assert
        assert response.status_code == 200
        request_id = response.headers["X-Request-ID"]
        uuid.UUID(request_id)
        assert response.json()["request_id"] == request_id

    def test_request_id_preserved_from_header(self):
        # Arrange
        client = TestClient(build_app())

        # Act
        response = client.get("/test", headers={"X-Request-ID": "custom-request-id-123"})

        # Assert
        assert response.headers["X-Request-ID"] == "custom-request-id-123"
        assert response.json()["request_id"] == "custom-request-id-123"

    @pytest.mark.parametrize("bad_id", ["has spaces in it", "x" * 129, "line\tbreak"])
    def test_malformed_request_id_replaced(self, bad_id):
        """Client IDs that are not plain tokens never reach the logs."""
        client = TestClient(build_app())

        response = client.get("/test", headers={"X-Request-ID": bad_id})

        assert response.headers["X-Request-ID"] != bad_id
        uuid.UUID(response.headers["X-Request-ID"])

    def test_request_id_set_in_logging_context(self):
        """Service code sees the request ID through the context variable."""
        client = TestClient(build_app())

        response = client.get("/test", headers={"X-Request-ID": "ctx-42"})

        assert response.json()["context_id"] == "ctx-42"
        assert request_id_var.get() is None

    def test_request_id_different_per_request(self):
        client = TestClient(build_app())

        ids = {client.get("/test").headers["X-Request-ID"] for _ in range(3)}

        assert len(ids) == 3


class TestLoggingMiddleware:
    """Tests for request/response logging middleware."""

    def test_logging_middleware_logs_completion(self):
        """
        Test that logging middleware logs one completion line.

        Arrange: FastAPI app with both middleware, mock logger
        Act: Make request
        Assert: Completion logged with method, path and status code
        """
        # Arrange
        client = TestClient(build_app(with_logging=True))

        with patch("app.middleware.logging.logger") as mock_logger:
            # Act
            response = client.get("/test?param=value")

            # Assert
            assert response.status_code == 200
            extra = completion_extra(mock_logger)
            assert extra["method"] == "GET"
            assert extra["path"] == "/test"
            assert extra["status_code"] == 200

    def test_logging_middleware_logs_duration(self):
        client = TestClient(build_app(with_logging=True))

        with patch("app.middleware.logging.logger") as mock_logger:
            client.get("/test")

            extra = completion_extra(mock_logger)
            assert isinstance(extra["duration_ms"], (int, float))
            assert extra["duration_ms"] >= 0

    def test_logging_middleware_includes_request_id(self):
        client = TestClient(build_app(with_logging=True))

        with patch("app.middleware.logging.logger") as mock_logger:
            client.get("/test", headers={"X-Request-ID": "test-request-id-456"})

            assert completion_extra(mock_logger)["request_id"] == "test-request-id-456"

    def test_health_probes_logged_at_debug(self):
        """Probe traffic stays out of the INFO access log."""
        client = TestClient(build_app(with_logging=True))

        with patch("app.middleware.logging.logger") as mock_logger:
            client.get("/api/v1/health")

            assert mock_logger.info.call_count == 0
            assert completion_extra(mock_logger, level="debug")["path"] == "/api/v1/health"

    def test_logging_middleware_logs_exceptions(self):
        """
        Test that logging middleware logs exceptions.

        Arrange: FastAPI app with middleware, endpoint that raises exception
        Act: Make request that triggers exception
        Assert: Logger called with exception details
        """
        # Arrange
        client = TestClient(build_app(with_logging=True), raise_server_exceptions=False)

        with patch("app.middleware.logging.logger") as mock_logger:
            # Act
            response = client.get("/boom")

            # Assert
            assert response.status_code == 500
            assert mock_logger.error.call_count > 0
            error_call = mock_logger.error.call_args_list[0]
            assert "Request failed" in str(error_call)
            assert error_call.kwargs["extra"]["exception_type"] == "ValueError"
