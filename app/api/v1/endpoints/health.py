"""
Health checks - for load balancers, Kubernetes, and monitoring.
Challenge: Fast liveness; readiness reflects whether the database and the
change channel (Redis when realtime_backend=redis) answer.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.core.dependencies import Changes
from app.db.session import DbSession

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/ready")
async def ready(db: DbSession, changes: Changes):
    """Readiness: 200 when a SELECT 1 succeeds and the change channel answers a ping, else 503."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Readiness: database unreachable: %s", e)
        database = "unavailable"
    realtime = "ok" if await changes.ping() else "unavailable"

    body = {
        "status": "ready" if database == realtime == "ok" else "unavailable",
        "database": database,
        "realtime": realtime,
        "realtime_backend": settings.realtime_backend,
    }
    code = status.HTTP_200_OK if body["status"] == "ready" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(body, status_code=code)
