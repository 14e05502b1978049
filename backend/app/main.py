"""
HP Homestay Registration - FastAPI Application Entry Point

This module initializes the FastAPI application with all middleware,
routes, and lifecycle event handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.logging_config import setup_logging
from app.middleware.request_id import RequestIDMiddleware
from app.middleware.logging import LoggingMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.middleware.rate_limit import RateLimitMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Startup:
        - Set up logging
        - Initialize database (create tables when ENABLE_DB_CREATE_ALL is set)

    Shutdown:
        - Close database connections
    """
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    await init_db()

    yield

    await close_db()


app = FastAPI(
    title=settings.project_name,
    version="0.1.0",
    description="Homestay registration: applications, district review, HimKosh payments and certificates",
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Configure middleware
# Note: Middleware is executed in reverse order of registration
# (last registered = first executed)

# Security headers middleware (runs last, adds headers to response)
app.add_middleware(SecurityHeadersMiddleware)

# Rate limiting middleware (stricter on login, payment initiation and send-back)
if not settings.disable_rate_limit:
    app.add_middleware(
        RateLimitMiddleware,
        strict_limit=settings.rate_limit_strict_per_minute,
        default_limit=settings.rate_limit_default_per_minute,
        trust_forwarded_for=settings.rate_limit_trust_forwarded_for,
    )

# Logging middleware (runs after RequestID to access request_id)
app.add_middleware(LoggingMiddleware)

# Request ID middleware (first to run - sets correlation ID)
app.add_middleware(RequestIDMiddleware)

# CORS middleware - configured from environment
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Import and include routers
from app.api.v1 import (  # noqa: E402
    health,
    auth,
    applications,
    da,
    dtdo,
    inspections,
    payments,
    settings as settings_router,
    grievances,
    grievance_reports,
    notifications,
    public,
)

app.include_router(health.router, prefix=settings.api_v1_prefix, tags=["health"])
app.include_router(auth.router, prefix=f"{settings.api_v1_prefix}/auth", tags=["auth"])
app.include_router(applications.router, prefix=settings.api_v1_prefix, tags=["applications"])
app.include_router(inspections.router, prefix=settings.api_v1_prefix, tags=["inspections"])
app.include_router(da.router, prefix=settings.api_v1_prefix, tags=["da"])
app.include_router(dtdo.router, prefix=settings.api_v1_prefix, tags=["dtdo"])
app.include_router(payments.router, prefix=settings.api_v1_prefix, tags=["payments"])
app.include_router(settings_router.router, prefix=settings.api_v1_prefix, tags=["settings"])
app.include_router(grievance_reports.router, prefix=settings.api_v1_prefix, tags=["grievances"])
app.include_router(grievances.router, prefix=settings.api_v1_prefix, tags=["grievances"])
app.include_router(notifications.router, prefix=settings.api_v1_prefix, tags=["notifications"])
app.include_router(public.router, prefix=settings.api_v1_prefix, tags=["public"])


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns basic API information.
    """
    return {
        "message": "HP Homestay Registration API",
        "version": "0.1.0",
        "docs": "/docs",
    }
