"""
interview_orchestrator.api.routers.health

Liveness (`/healthz`) and readiness (`/readyz`, DB probe) endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from interview_orchestrator.api.deps import db_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    # The session store is the only hard dependency; text generation degrades per turn.
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
