"""
Logging middleware for request/response tracking.

One structured line per request with method, path, status code,
duration_ms, client IP and the request correlation ID. Failures are
logged with their traceback and re-raised.

Must be registered AFTER RequestIDMiddleware to access request_id.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import get_logger


logger = get_logger(__name__)

# Probe traffic is logged at DEBUG to keep the access log readable
QUIET_PATH_SUFFIXES = ("/health", "/health/ready")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Example:
        app.add_middleware(RequestIDMiddleware)  # First
        app.add_middleware(LoggingMiddleware)    # Second (runs after RequestID)

    Log output (JSON):
        {
            "timestamp": "2025-11-24T10:30:00.123456+00:00",
            "level": "INFO",
            "message": "Request completed",
            "method": "POST",
            "path": "/api/v1/da/applications/4b1f.../forward-to-dtdo",
            "status_code": 200,
            "duration_ms": 18.2,
            "client_ip": "10.0.0.7",
            "request_id": "abc-123"
        }
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else None
        request_id = getattr(request.state, "request_id", None)

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {str(exc)}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": client_ip,
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                },
                exc_info=True
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        level = "debug" if path.endswith(QUIET_PATH_SUFFIXES) else "info"
        getattr(logger, level)(
            "Request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "request_id": request_id,
            }
        )

        return response
