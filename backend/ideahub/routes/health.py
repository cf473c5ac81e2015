"""
IdeaHub Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Load balancers route away from instances that cannot reach the database.
How:   Runs `SELECT 1` against the engine and reports the result.
Who:   Called by Docker health checks, load balancers and monitoring systems.

Not behind the API key gateway and not rate limited: probes carry no key.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from ideahub import __version__
from ideahub.database import engine
from ideahub.schemas.idea import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
