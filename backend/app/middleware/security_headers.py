"""
Security headers middleware.

The API serves JSON to the registration portal; the only HTML it renders
is the interactive documentation, which loads Swagger/ReDoc assets from a
CDN. JSON responses get a lock-down Content-Security-Policy, the docs get
none so they keep working.

Headers implemented (OWASP recommendations):
- X-Content-Type-Options: Prevents MIME-type sniffing
- X-Frame-Options: Prevents clickjacking
- Content-Security-Policy: default-src 'none' for API responses
- Referrer-Policy / Permissions-Policy
- Strict-Transport-Security when the request arrived over HTTPS

References:
- OWASP Secure Headers Project: https://owasp.org/www-project-secure-headers/
"""

from typing import Callable, Iterable
import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; form-action 'none'"

DOCS_PATHS = ("/docs", "/redoc")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all HTTP responses.

    Example:
        app.add_middleware(SecurityHeadersMiddleware)
    """

    def __init__(
        self,
        app,
        csp_policy: str = API_CSP,
        exempt_paths: Iterable[str] = DOCS_PATHS,
        hsts_max_age: int = 31536000,
    ):
        """
        Args:
            app: FastAPI application instance
            csp_policy: Content-Security-Policy for non-exempt responses
            exempt_paths: Path prefixes served without a CSP (interactive docs)
            hsts_max_age: Strict-Transport-Security max-age for HTTPS requests
        """
        super().__init__(app)
        self.csp_policy = csp_policy
        self.exempt_paths = tuple(exempt_paths)
        self.hsts_max_age = hsts_max_age

        logger.info(
            "Security headers middleware initialized",
            extra={"exempt_paths": list(self.exempt_paths)},
        )

    def _is_https(self, request: Request) -> bool:
        forwarded_proto = request.headers.get("X-Forwarded-Proto")
        if forwarded_proto:
            return forwarded_proto.split(",")[0].strip() == "https"
        return request.url.scheme == "https"

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "geolocation=(), "
            "microphone=(), "
            "camera=(), "
            "usb=()"
        )

        if not request.url.path.startswith(self.exempt_paths):
            response.headers["Content-Security-Policy"] = self.csp_policy

        if self._is_https(request):
            response.headers["Strict-Transport-Security"] = (
                f"max-age={self.hsts_max_age}; includeSubDomains"
            )

        return response
