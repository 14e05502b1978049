"""
Structured JSON logging configuration.

Every log line is a single JSON object on stdout. Besides the usual
timestamp/level/logger fields, workflow code attaches its own context
through ``extra={...}``:

- request_id: correlation ID set by RequestIDMiddleware
- application_id / application_number: the homestay application touched
- actor_id / actor_role: the officer or owner performing the action
- status_from / status_to: the workflow transition being recorded
- path, method, status_code, duration_ms, client_ip: HTTP request details

request_id is filled in from ``request_id_var`` when a record does not
carry one, so service-level lines are correlated with their request.

Example output:
    {"timestamp": "2025-11-24T10:30:00.123456+00:00", "level": "INFO",
     "message": "Application forwarded to DTDO", "logger": "app.services.scrutiny",
     "application_id": "4b1f...", "status_from": "under_scrutiny",
     "status_to": "forwarded_to_dtdo"}
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Correlation ID of the HTTP request being served (set by RequestIDMiddleware)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
})

CONTEXT_FIELDS = (
    "request_id",
    "application_id",
    "application_number",
    "actor_id",
    "actor_role",
    "status_from",
    "status_to",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "client_ip",
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Known context fields are emitted first and in a stable order so log
    queries on application_id or status_to stay cheap; any other extra
    attributes follow.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in CONTEXT_FIELDS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Replaces any handlers on the root logger with a single stdout handler.
    Call once at application startup (or at the top of a script).

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter (True) or a plain text formatter (False)
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually the module's __name__)."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    application_id: Optional[str] = None,
    application_number: Optional[str] = None,
    actor_id: Optional[str] = None,
    status_from: Optional[str] = None,
    status_to: Optional[str] = None,
    **extra_fields: Any
) -> None:
    """
    Log message with structured workflow context.

    Context arguments left as None are omitted from the line, so callers
    pass only what they know.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        application_id: Homestay application touched
        application_number: Its public number
        actor_id: User performing the action
        status_from: Status before a transition
        status_to: Status after a transition
        **extra_fields: Additional fields to include

    Example:
        log_with_context(
            logger,
            "info",
            "Application status changed",
            application_id="4b1f...",
            status_from="under_scrutiny",
            status_to="forwarded_to_dtdo",
        )
    """
    extra: Dict[str, Any] = {
        key: value
        for key, value in (
            ("application_id", application_id),
            ("application_number", application_number),
            ("actor_id", actor_id),
            ("status_from", status_from),
            ("status_to", status_to),
        )
        if value is not None
    }
    extra.update(extra_fields)

    getattr(logger, level.lower())(message, extra=extra)
