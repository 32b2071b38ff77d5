"""
Health check endpoints for monitoring and orchestration.

- /health/live: process is up
- /health/ready: database and Redis answer
- /health: dependency detail for humans
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from educore.config import settings
from educore.core.cache import cache_manager
from educore.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        async with db_manager.session_factory() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health_database_unhealthy", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "response_time_ms": round((time.perf_counter() - start) * 1000, 2)}


async def _check_redis() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await cache_manager.client.ping()
    except Exception as e:
        logger.warning("health_redis_unhealthy", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "response_time_ms": round((time.perf_counter() - start) * 1000, 2)}


@router.get("/health/live")
async def liveness() -> dict:
    """Liveness probe. 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    Returns:
        200: Ready to serve traffic
        503: Database or Redis unavailable
    """
    checks = {"database": await _check_database(), "redis": await _check_redis()}
    is_ready = all(check["status"] == "healthy" for check in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if is_ready else "not_ready", "checks": checks},
    )


@router.get("/health")
async def health() -> dict:
    """
    Detailed health check.

    Always 200; ``status`` is "degraded" when a dependency is down. Without
    the database nothing authenticates; without Redis only rate limiting and
    the optional denylist are affected.
    """
    checks = {"database": await _check_database(), "redis": await _check_redis()}
    overall = "healthy" if all(c["status"] == "healthy" for c in checks.values()) else "degraded"

    return {
        "status": overall,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
