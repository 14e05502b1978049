"""
Rate limiting middleware using token bucket algorithm.

Per-IP limits protect the login form from password guessing and the
payment initiation endpoint from challan spam; everything else gets a
more generous default.

Token Bucket Algorithm:
- Each (IP, tier) pair gets a bucket with a fixed capacity
- Tokens are added at a constant rate (refill_rate)
- Each request consumes one token
- If no tokens available, request is rejected with 429

Note: This is an in-memory implementation; buckets are not shared
between worker processes.
"""

import time
from typing import Callable, Dict, Iterable, Tuple
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Path fragments that get the strict limit
DEFAULT_STRICT_PATHS = ("/auth/token", "/payments/himkosh/initiate", "/send-back")

BUCKET_IDLE_SECONDS = 600


class TokenBucket:
    """
    Token bucket for rate limiting.

    Attributes:
        capacity: Maximum number of tokens in the bucket
        refill_rate: Number of tokens added per second
        tokens: Current number of available tokens
        last_refill: Timestamp of last refill operation
    """

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.time()

    def consume(self, tokens: int = 1) -> bool:
        """
        Attempt to consume tokens from the bucket.

        Refills tokens based on elapsed time before checking availability.

        Returns:
            True if tokens were available and consumed, False otherwise
        """
        now = time.time()
        elapsed = now - self.last_refill
        self.tokens = min(
            self.capacity,
            self.tokens + (elapsed * self.refill_rate)
        )
        self.last_refill = now

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def get_wait_time(self) -> float:
        """Seconds until the next token is available."""
        if self.tokens >= 1:
            return 0.0
        tokens_needed = 1 - self.tokens
        return tokens_needed / self.refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using token buckets per IP address.

    Rate limits:
    - Strict paths (login, payment initiation, DA send-back and its OTP):
      ``strict_limit`` requests/minute
    - Other endpoints: ``default_limit`` requests/minute

    Returns 429 Too Many Requests with ``Retry-After`` and
    ``X-RateLimit-*`` headers when the limit is exceeded.

    Example:
        app.add_middleware(
            RateLimitMiddleware,
            strict_limit=10,
            default_limit=120
        )
    """

    def __init__(
        self,
        app,
        strict_limit: int = 10,
        default_limit: int = 120,
        strict_paths: Iterable[str] = DEFAULT_STRICT_PATHS,
        cleanup_interval: int = 300,
        trust_forwarded_for: bool = True,
    ):
        super().__init__(app)
        self.strict_limit = strict_limit
        self.default_limit = default_limit
        self.strict_paths = tuple(strict_paths)
        self.cleanup_interval = cleanup_interval
        self.trust_forwarded_for = trust_forwarded_for

        # Storage: {(ip, tier): (bucket, last_access_time)}
        self.buckets: Dict[Tuple[str, str], Tuple[TokenBucket, float]] = {}
        self.last_cleanup = time.time()

        logger.info(
            "Rate limiting initialized",
            extra={
                "strict_limit": strict_limit,
                "default_limit": default_limit,
            }
        )

    def _get_client_ip(self, request: Request) -> str:
        """
        Client IP. The first X-Forwarded-For hop is used only when the
        deployment sits behind a proxy that sets it.
        """
        forwarded = request.headers.get("X-Forwarded-For") if self.trust_forwarded_for else None
        if forwarded:
            return forwarded.split(",")[0].strip()

        if request.client:
            return request.client.host
        return "unknown"

    def _get_tier(self, path: str) -> Tuple[str, int]:
        """(tier name, requests per minute) for ``path``."""
        if any(fragment in path for fragment in self.strict_paths):
            return "strict", self.strict_limit
        return "default", self.default_limit

    def _get_or_create_bucket(self, key: Tuple[str, str], limit: int) -> TokenBucket:
        now = time.time()

        if now - self.last_cleanup > self.cleanup_interval:
            self._cleanup_old_buckets(now)

        if key in self.buckets:
            bucket, _ = self.buckets[key]
            self.buckets[key] = (bucket, now)
            return bucket

        # Capacity = limit (burst), refill_rate = limit/60 (per second)
        bucket = TokenBucket(
            capacity=limit,
            refill_rate=limit / 60.0
        )
        self.buckets[key] = (bucket, now)
        return bucket

    def _cleanup_old_buckets(self, now: float) -> None:
        """Drop buckets idle for BUCKET_IDLE_SECONDS."""
        stale = [
            key for key, (_, last_access) in self.buckets.items()
            if now - last_access > BUCKET_IDLE_SECONDS
        ]

        for key in stale:
            del self.buckets[key]

        if stale:
            logger.info(
                "Cleaned up old rate limit buckets",
                extra={"count": len(stale)}
            )

        self.last_cleanup = now

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        client_ip = self._get_client_ip(request)
        path = request.url.path
        tier, limit = self._get_tier(path)

        bucket = self._get_or_create_bucket((client_ip, tier), limit)

        if not bucket.consume():
            wait_time = bucket.get_wait_time()

            logger.warning(
                "Rate limit exceeded",
                extra={
                    "client_ip": client_ip,
                    "path": path,
                    "limit": limit,
                    "wait_time": wait_time,
                    "request_id": getattr(request.state, "request_id", None),
                }
            )

            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded",
                    "limit": limit,
                    "window": "1 minute",
                    "retryAfter": int(wait_time) + 1,
                },
                headers={
                    "Retry-After": str(int(wait_time) + 1),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(int(bucket.tokens))

        return response
