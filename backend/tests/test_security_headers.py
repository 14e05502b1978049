"""
Tests for security headers middleware.

Verifies OWASP-recommended headers on API responses, the CSP exemption
for the interactive docs, and HSTS behind an HTTPS proxy.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from app.middleware.security_headers import API_CSP, SecurityHeadersMiddleware


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/api/v1/public/features")
    async def features():
        return {"flags": {}}

    @app.get("/api/v1/missing")
    async def missing():
        raise HTTPException(status_code=404, detail="Not found")

    return TestClient(app)


class TestSecurityHeaders:
    """Headers every API response carries."""

    def test_basic_headers(self, client):
        # Act
        response = client.get("/api/v1/public/features")

        # Assert
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "camera=()" in response.headers["Permissions-Policy"]

    def test_api_responses_locked_down(self, client):
        response = client.get("/api/v1/public/features")

        assert response.headers["Content-Security-Policy"] == API_CSP
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    def test_headers_on_error_responses(self, client):
        response = client.get("/api/v1/missing")

        assert response.status_code == 404
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Content-Security-Policy" in response.headers


class TestDocsExemption:
    """Swagger UI and ReDoc load CDN assets, so they get no CSP."""

    @pytest.mark.parametrize("path", ["/docs", "/redoc"])
    def test_docs_without_csp(self, path):
        # Arrange
        client = TestClient(_app_with_docs())

        # Act
        response = client.get(path)

        # Assert
        assert response.status_code == 200
        assert "Content-Security-Policy" not in response.headers
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_custom_exempt_paths(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, exempt_paths=("/static",))

        @app.get("/static/logo")
        async def logo():
            return {"ok": True}

        response = TestClient(app).get("/static/logo")

        assert "Content-Security-Policy" not in response.headers


class TestStrictTransportSecurity:
    def test_no_hsts_over_plain_http(self, client):
        response = client.get("/api/v1/public/features")

        assert "Strict-Transport-Security" not in response.headers

    def test_hsts_behind_https_proxy(self, client):
        """TLS terminates at the proxy, which reports the original scheme."""
        response = client.get(
            "/api/v1/public/features", headers={"X-Forwarded-Proto": "https"}
        )

        assert response.headers["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains"

    def test_custom_max_age(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, hsts_max_age=600)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        response = TestClient(app).get("/ping", headers={"X-Forwarded-Proto": "https, http"})

        assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"


def _app_with_docs() -> FastAPI:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware)
    return app
