"""
Health check endpoints for monitoring and orchestration.

- /health: liveness, always 200 while the process is up
- /health/ready: readiness, checks the database when one is configured
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "laundry-booking-api"}


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession | None = Depends(get_session)):
    """
    Readiness check.

    In in-memory mode there is nothing external to check. Otherwise a
    ``SELECT 1`` must succeed or the endpoint answers 503.
    """
    health_status = {"status": "ready", "checks": {}}
    if session is None:
        health_status["checks"]["database"] = "in_memory"
        return health_status

    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        logger.error("Readiness check: Database unhealthy", exc_info=e)
        health_status["status"] = "not_ready"
        health_status["checks"]["database"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
