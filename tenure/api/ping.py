from fastapi import APIRouter

from tenure.core.config import settings

router = APIRouter()


@router.get("/ping", tags=["health"])
async def ping() -> dict[str, str]:
    return {"message": "pong", "service": settings.app_name}
