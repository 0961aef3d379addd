from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..exceptions import translate_store_errors

health_router = APIRouter(tags=["Health"])


@health_router.get("/health")
async def health_check():
    return {"status": "ok"}


@health_router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    async with translate_store_errors(db, "check database readiness"):
        await db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "ok"}
