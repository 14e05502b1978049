"""
Domain exceptions raised by the service layer.

Routers translate these into HTTP responses (see app.api.errors); the
services themselves never import FastAPI.
"""

from typing import Any, Dict, Optional


class WorkflowError(ValueError):
    """
    The requested operation is not valid for the application's current
    state or the supplied input (HTTP 400).

    ``extra`` is merged into the error response body, e.g.
    ``{"requireOtp": True, "revertCount": 0}``.
    """

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ConflictError(WorkflowError):
    """The operation collides with existing state (HTTP 409)."""


class ApplicationNotFound(LookupError):
    """Requested record does not exist (HTTP 404)."""

    def __init__(self, message: str = "Application not found"):
        super().__init__(message)
        self.message = message


class DistrictAccessDenied(PermissionError):
    """Caller may not act on this record (HTTP 403)."""

    def __init__(self, message: str = "You can only access applications from your district"):
        super().__init__(message)
        self.message = message


class GatewayError(RuntimeError):
    """Payment gateway misconfigured or returned an unusable response (HTTP 502)."""
