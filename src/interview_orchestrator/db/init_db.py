"""
interview_orchestrator.db.init_db

DB initialization helper for local development and tests.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from interview_orchestrator.db import models  # noqa: F401  (registers tables on Base.metadata)
from interview_orchestrator.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    Production runs Alembic migrations instead.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
