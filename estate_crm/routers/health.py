"""Health check router - backend mode and database reachability."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..config import BackendMode, resolve_backend_mode, settings
from ..database import Backend, get_backend

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(backend: Backend = Depends(get_backend)):
    mode = resolve_backend_mode(settings)
    if mode is BackendMode.DEGRADED:
        return {"status": "degraded", "backend": mode.value, "database": "not_configured"}

    try:
        async with backend.session() as session:
            await session.execute(text("SELECT 1"))
        database = "ok"
    except (SQLAlchemyError, OSError):
        logger.warning("Database health check failed", exc_info=True)
        database = "error"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "backend": mode.value,
        "database": database,
    }
