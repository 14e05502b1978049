"""
Tests for health check endpoints.

This module tests:
- /health endpoint (liveness probe)
- /health/ready endpoint (readiness probe with dependency checks)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def probes(db: bool, key: bool):
    """Patch both readiness probes with fixed results."""
    return (
        patch("app.api.v1.health.check_database", new=AsyncMock(return_value=db)),
        patch("app.api.v1.health.check_himkosh_key", new=AsyncMock(return_value=key)),
    )


class TestHealthEndpoint:
    """Tests for /health liveness probe."""

    def test_health_returns_200(self):
        """
        Test that /health endpoint returns 200 status.

        Arrange: None needed - endpoint should always work
        Act: GET /health
        Assert: Status 200, response has status and timestamp
        """
        # Act
        response = client.get("/api/v1/health")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data

    def test_health_returns_valid_timestamp(self):
        response = client.get("/api/v1/health")

        timestamp = datetime.fromisoformat(response.json()["timestamp"].replace("Z", "+00:00"))
        assert isinstance(timestamp, datetime)

    def test_health_needs_no_authentication(self):
        """Probes are reachable without a bearer token."""
        response = client.get("/api/v1/health", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 200


class TestReadinessEndpoint:
    """Tests for /health/ready readiness probe."""

    def test_ready_all_checks_pass(self):
        """
        Test /health/ready when all dependencies are healthy.

        Arrange: Mock all probes to return True
        Act: GET /health/ready
        Assert: Status 200, overall status "ready", all checks healthy
        """
        # Arrange
        db_patch, key_patch = probes(db=True, key=True)

        with db_patch, key_patch:
            # Act
            response = client.get("/api/v1/health/ready")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["db"]["healthy"] is True
        assert data["checks"]["himkosh_key"]["healthy"] is True
        assert "timestamp" in data

    def test_ready_db_fails(self):
        """
        Test /health/ready when database check fails.

        Arrange: Mock DB probe to return False, key probe to return True
        Act: GET /health/ready
        Assert: Status 503, overall status "not_ready", DB check failed
        """
        # Arrange
        db_patch, key_patch = probes(db=False, key=True)

        with db_patch, key_patch:
            # Act
            response = client.get("/api/v1/health/ready")

        # Assert
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["db"]["healthy"] is False
        assert data["checks"]["db"]["error"] == "Database connection failed or timed out"

    def test_missing_key_file_is_not_critical(self):
        """Payments fail without the key file, but the portal still serves."""
        # Arrange
        db_patch, key_patch = probes(db=True, key=False)

        with db_patch, key_patch:
            # Act
            response = client.get("/api/v1/health/ready")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["himkosh_key"]["healthy"] is False
        assert data["checks"]["himkosh_key"]["critical"] is False
        assert data["checks"]["himkosh_key"]["error"] == "HimKosh key file not found"

    def test_ready_all_checks_fail(self):
        db_patch, key_patch = probes(db=False, key=False)

        with db_patch, key_patch:
            response = client.get("/api/v1/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_ready_includes_latency(self):
        db_patch, key_patch = probes(db=True, key=True)

        with db_patch, key_patch:
            response = client.get("/api/v1/health/ready")

        latency = response.json()["checks"]["db"]["latency_ms"]
        assert isinstance(latency, (int, float))
        assert latency >= 0
