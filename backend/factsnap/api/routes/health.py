"""Health & Readiness Checks — liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if database is unreachable (readiness)
    - Readiness also reports how many detached tasks are still in flight
"""

import logging
import time

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from factsnap.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "factsnap-api"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check(request: Request):
    """Ping the database through the live session manager."""
    manager = database.db_manager
    start = time.perf_counter()
    db_ok = await manager.health_check() if manager else False
    latency_ms = round((time.perf_counter() - start) * 1000, 1)

    if not db_ok:
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )

    services = getattr(request.app.state, "services", None)
    return {
        "status": "ready",
        "checks": {"database": "healthy", "database_latency_ms": latency_ms},
        "background_tasks": services.runner.pending if services else 0,
    }
