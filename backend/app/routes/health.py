"""
QPaperHub Backend — Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and the object store, returns status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   All dependencies operational
    - degraded:  Object store unavailable or its circuit is open (uploads fail,
                 browsing still works)
    - unhealthy: Database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request

from app import __version__
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies "
        "(database and object store)."
    ),
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    store_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    database = getattr(request.app.state, "database", None)
    if database is None or not await database.ping():
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable")

    # ── Check Object Store ────────────────────────────────────────────────
    object_store = getattr(request.app.state, "object_store", None)
    backend = object_store.backend_name if object_store is not None else "none"
    if object_store is None:
        store_status = "unavailable"
    elif object_store.status() != "available":
        # Circuit open: don't probe a store we're deliberately avoiding
        store_status = object_store.status()
    elif not await object_store.health_check():
        store_status = "unavailable"

    if store_status != "available" and overall != "unhealthy":
        overall = "degraded"
        logger.warning("Health check: object store %s", store_status)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        object_store=store_status,
        object_store_backend=backend,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
