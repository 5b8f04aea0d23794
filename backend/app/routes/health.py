"""
Mom's Yums Backend - Health Check Route
=========================================

What:  GET /health for Docker health checks and uptime monitors.
How:   SELECT 1 against the database, plus each vision backend's own
       lightweight probe.

Status levels:
    - healthy:   database up, every backend available
    - degraded:  database up, but a backend is unavailable or unconfigured
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import engine
from app.dependencies import get_extraction_service
from app.schemas.recipe import HealthResponse
from app.services.extraction_service import ExtractionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    extraction: ExtractionService = Depends(get_extraction_service),
) -> HealthResponse:
    database_ok = await check_database()
    backends = await extraction.backend_status()

    if not database_ok:
        overall = "unhealthy"
        response.status_code = 503
    elif any(state != "available" for state in backends.values()):
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database="connected" if database_ok else "disconnected",
        backends=backends,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
