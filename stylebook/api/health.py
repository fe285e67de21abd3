from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import get_db
from stylebook.services.ai_service import AIService, get_ai_service

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def liveness() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(db: Annotated[AsyncSession, Depends(get_db)]) -> dict[str, Any]:
    """Database round trip; the AI gateway has its own probe at /health/ai."""
    try:
        await db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        database = f"unhealthy: {e}"

    return {
        "status": "healthy" if database == "healthy" else "unhealthy",
        "checks": {"database": database},
    }


@router.get("/ai")
async def ai_readiness(ai_service: Annotated[AIService, Depends(get_ai_service)]) -> dict[str, Any]:
    return await ai_service.check_health()
