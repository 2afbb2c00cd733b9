"""
TreeSpotter Backend - Health Check Route
=========================================

What:  Liveness endpoint plus a database probe.
How:   Runs SELECT 1 through the connection manager's engine.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    - healthy:    database reachable (HTTP 200)
    - unhealthy:  no connection or the probe failed (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import db_manager
from app.exceptions import StoreUnavailableError
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with db_manager.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (StoreUnavailableError, SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if overall != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
