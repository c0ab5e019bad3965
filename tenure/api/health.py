import asyncio

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from tenure.core.config import settings
from tenure.db.session import SessionDep

router = APIRouter(tags=["health"])

DB_CHECK_TIMEOUT_SECONDS = 2.0


@router.get("/health")
async def health(session: SessionDep) -> dict[str, str]:
    """Report 503 unless the database answers within the timeout."""
    try:
        async with asyncio.timeout(DB_CHECK_TIMEOUT_SECONDS):
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        detail = "Database timeout" if isinstance(exc, TimeoutError) else "Database unavailable"
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail) from exc
    return {
        "status": "ok",
        "database": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
    }
