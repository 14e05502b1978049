"""
Health check endpoints for monitoring and readiness probes.

- Liveness probe: /health (basic "is the server running" check)
- Readiness probe: /health/ready (database, HimKosh key file)
"""

import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, status, Response

from app.schemas.health import (
    HealthResponse,
    ReadinessResponse,
    HealthCheckDetail,
)
from app.core.probes import check_database, check_himkosh_key


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Basic health check to verify the service is running",
)
async def health_check() -> HealthResponse:
    """
    Basic liveness probe.

    This endpoint should always return 200 if the application is running.

    Example response:
        {
            "status": "ok",
            "timestamp": "2025-11-24T10:30:00.123456+00:00"
        }
    """
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc)
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Readiness check including database connectivity",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """
    Readiness probe with dependency checks.

    The database check is critical: a failure returns 503. A missing
    HimKosh key file is reported but does not fail readiness, since
    everything except payments still works.

    Example response (healthy):
        {
            "status": "ready",
            "checks": {
                "db": {"healthy": true, "critical": true, "latency_ms": 3.1},
                "himkosh_key": {"healthy": false, "critical": false, "error": "..."}
            },
            "timestamp": "2025-11-24T10:30:00.123456+00:00"
        }
    """
    db_start = time.time()
    db_healthy = await check_database()
    db_latency = (time.time() - db_start) * 1000

    key_healthy = await check_himkosh_key()

    checks: Dict[str, HealthCheckDetail] = {
        "db": HealthCheckDetail(
            healthy=db_healthy,
            critical=True,
            latency_ms=round(db_latency, 2),
            error=None if db_healthy else "Database connection failed or timed out"
        ),
        "himkosh_key": HealthCheckDetail(
            healthy=key_healthy,
            critical=False,
            error=None if key_healthy else "HimKosh key file not found"
        ),
    }

    ready = all(check.healthy for check in checks.values() if check.critical)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        checks=checks,
        timestamp=datetime.now(timezone.utc)
    )
