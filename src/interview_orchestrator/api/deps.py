"""
interview_orchestrator.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the app's settings, DB sessions and text generator to routers.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from interview_orchestrator.settings import Settings
from interview_orchestrator.text_generation.client import TextGenerator


def settings_dep(request: Request) -> Settings:
    # The app carries the settings it was built with (tests build apps with custom ones).
    return request.app.state.settings  # type: ignore[attr-defined]


def text_generator_dep(request: Request) -> TextGenerator:
    return request.app.state.text_generator  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created in the lifespan of `interview_orchestrator.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commits are explicit in services/routers.
    async with session_factory() as session:
        yield session
