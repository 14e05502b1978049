"""
Tests for rate limiting middleware.

Tests the token bucket algorithm and rate limit enforcement.
"""

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.middleware.rate_limit import RateLimitMiddleware, TokenBucket


class TestTokenBucket:
    """Unit tests for TokenBucket implementation."""

    def test_token_bucket_initialization(self):
        """Test token bucket initializes with full capacity."""
        bucket = TokenBucket(capacity=10, refill_rate=1.0)
        assert bucket.capacity == 10
        assert bucket.refill_rate == 1.0
        assert bucket.tokens == 10.0

    def test_consume_token_success(self):
        bucket = TokenBucket(capacity=10, refill_rate=1.0)
        assert bucket.consume(1) is True
        assert 8.9 < bucket.tokens <= 9.1

    def test_consume_token_failure(self):
        """Test consuming tokens when insufficient."""
        bucket = TokenBucket(capacity=1, refill_rate=0.01)
        assert bucket.consume(1) is True
        assert bucket.consume(1) is False

    def test_token_refill_over_time(self):
        """Test tokens refill at correct rate."""
        bucket = TokenBucket(capacity=10, refill_rate=10.0)  # 10 tokens/second
        bucket.consume(5)

        time.sleep(0.5)
        bucket.consume(0)  # Trigger refill
        assert bucket.tokens >= 9.9

    def test_token_refill_cap(self):
        bucket = TokenBucket(capacity=10, refill_rate=10.0)
        time.sleep(0.2)
        bucket.consume(0)
        assert bucket.tokens <= 10.0

    def test_get_wait_time(self):
        """Need 1 token at 2 tokens/second: about half a second."""
        bucket = TokenBucket(capacity=10, refill_rate=2.0)
        bucket.consume(10)
        wait_time = bucket.get_wait_time()
        assert 0.4 <= wait_time <= 0.6

    def test_no_wait_when_tokens_available(self):
        assert TokenBucket(capacity=3, refill_rate=1.0).get_wait_time() == 0.0


@pytest.fixture
def app_with_rate_limit():
    """Test app with small limits: 3/min on login and payment initiation, 5/min otherwise."""
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, strict_limit=3, default_limit=5)

    @app.get("/api/v1/applications")
    async def applications():
        return {"message": "success"}

    @app.post("/api/v1/auth/token")
    async def login():
        return {"message": "auth success"}

    @app.post("/api/v1/payments/himkosh/initiate/{application_id}")
    async def initiate(application_id: str):
        return {"application_id": application_id}

    return app


class TestRateLimitMiddleware:
    """Integration tests for rate limiting middleware."""

    def test_rate_limit_allows_requests_under_limit(self, app_with_rate_limit):
        client = TestClient(app_with_rate_limit)

        for _ in range(5):
            response = client.get("/api/v1/applications")
            assert response.status_code == 200
            assert "X-RateLimit-Remaining" in response.headers

    def test_rate_limit_blocks_requests_over_limit(self, app_with_rate_limit):
        # Arrange
        client = TestClient(app_with_rate_limit)
        for _ in range(5):
            client.get("/api/v1/applications")

        # Act
        response = client.get("/api/v1/applications")

        # Assert
        assert response.status_code == 429
        assert response.json()["detail"] == "Rate limit exceeded"
        assert "Retry-After" in response.headers

    def test_login_is_stricter(self, app_with_rate_limit):
        """Password guessing hits the strict limit first."""
        client = TestClient(app_with_rate_limit)

        for _ in range(3):
            assert client.post("/api/v1/auth/token").status_code == 200

        assert client.post("/api/v1/auth/token").status_code == 429

    def test_payment_initiation_is_strict(self, app_with_rate_limit):
        client = TestClient(app_with_rate_limit)

        responses = [
            client.post(f"/api/v1/payments/himkosh/initiate/app-{i}") for i in range(4)
        ]

        assert [r.status_code for r in responses] == [200, 200, 200, 429]
        assert responses[0].headers["X-RateLimit-Limit"] == "3"

    def test_tiers_have_separate_buckets(self, app_with_rate_limit):
        """Exhausting the login limit leaves ordinary pages usable."""
        # Arrange
        client = TestClient(app_with_rate_limit)
        for _ in range(4):
            client.post("/api/v1/auth/token")

        # Act
        response = client.get("/api/v1/applications")

        # Assert
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "5"

    def test_rate_limit_different_ips_independent(self, app_with_rate_limit):
        """Buckets are keyed by the first X-Forwarded-For hop."""
        # Arrange
        client = TestClient(app_with_rate_limit)
        first = {"X-Forwarded-For": "192.168.1.1, 10.0.0.1"}
        second = {"X-Forwarded-For": "192.168.1.2"}
        for _ in range(5):
            client.get("/api/v1/applications", headers=first)

        # Act
        blocked = client.get("/api/v1/applications", headers=first)
        allowed = client.get("/api/v1/applications", headers=second)

        # Assert
        assert blocked.status_code == 429
        assert allowed.status_code == 200

    def test_rate_limit_429_response_format(self, app_with_rate_limit):
        # Arrange
        client = TestClient(app_with_rate_limit)
        for _ in range(5):
            client.get("/api/v1/applications")

        # Act
        response = client.get("/api/v1/applications")

        # Assert
        data = response.json()
        assert data["limit"] == 5
        assert data["window"] == "1 minute"
        assert isinstance(data["retryAfter"], int)
        assert data["retryAfter"] >= 1
        assert response.headers["Retry-After"] == str(data["retryAfter"])
        assert response.headers["X-RateLimit-Remaining"] == "0"


class TestRateLimitConfiguration:
    """Test rate limit configuration and customization."""

    def test_custom_strict_paths(self):
        app = FastAPI()
        app.add_middleware(
            RateLimitMiddleware,
            strict_limit=1,
            default_limit=50,
            strict_paths=("/grievances",),
        )

        @app.post("/api/v1/grievances")
        async def grievance():
            return {"ok": True}

        client = TestClient(app)

        assert client.post("/api/v1/grievances").status_code == 200
        assert client.post("/api/v1/grievances").status_code == 429

    def test_send_back_is_strict(self):
        """OTP entry on a send-back shares the login budget."""
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, strict_limit=2, default_limit=50)

        @app.post("/api/v1/da/applications/{application_id}/send-back")
        async def send_back(application_id: str):
            return {"ok": True}

        client = TestClient(app)

        codes = [client.post("/api/v1/da/applications/a1/send-back").status_code for _ in range(3)]

        assert codes == [200, 200, 429]

    def test_forwarded_for_ignored_when_untrusted(self):
        """Without a proxy in front, a spoofed header cannot mint fresh buckets."""
        # Arrange
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, strict_limit=1, default_limit=50, trust_forwarded_for=False)

        @app.post("/api/v1/auth/token")
        async def login():
            return {"ok": True}

        client = TestClient(app)
        client.post("/api/v1/auth/token", headers={"X-Forwarded-For": "10.0.0.1"})

        # Act
        response = client.post("/api/v1/auth/token", headers={"X-Forwarded-For": "10.0.0.2"})

        # Assert
        assert response.status_code == 429

    def test_cleanup_old_buckets(self):
        """Idle buckets are dropped so memory does not grow with every client."""
        # Arrange
        middleware = RateLimitMiddleware(app=None, strict_limit=10, default_limit=60, cleanup_interval=1)
        now = time.time()
        middleware.buckets[("192.168.1.1", "default")] = (TokenBucket(10, 1.0), now - 700)
        middleware.buckets[("192.168.1.2", "default")] = (TokenBucket(10, 1.0), now)

        # Act
        middleware._cleanup_old_buckets(now)

        # Assert
        assert ("192.168.1.1", "default") not in middleware.buckets
        assert ("192.168.1.2", "default") in middleware.buckets
        assert middleware.last_cleanup == now
