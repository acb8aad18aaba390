"""
interview_orchestrator.api.app

FastAPI app factory for the interview orchestrator service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own shared infrastructure for the process lifetime (DB engine, HTTP pool, text generator).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from interview_orchestrator import __version__
from interview_orchestrator.api.routers.health import router as health_router
from interview_orchestrator.api.routers.interview import router as interview_router
from interview_orchestrator.api.routers.sessions import router as sessions_router
from interview_orchestrator.db.init_db import init_db
from interview_orchestrator.db.session import create_engine, create_sessionmaker
from interview_orchestrator.observability.logging import configure_logging, get_logger
from interview_orchestrator.observability.middleware import RequestContextMiddleware
from interview_orchestrator.settings import Settings
from interview_orchestrator.text_generation.client import (
    CohereTextGenerator,
    TextGenerator,
    create_http_client,
)

log = get_logger(__name__)


def create_app(*, settings: Settings, text_generator: TextGenerator | None = None) -> FastAPI:
    """
    `text_generator` replaces the Cohere client (tests pass scripted generators).
    """

    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod runs Alembic migrations instead.
            await init_db(engine)

        http = None
        if text_generator is None:
            http = create_http_client(settings)
            app.state.text_generator = CohereTextGenerator(settings=settings, http=http)
        else:
            app.state.text_generator = text_generator

        try:
            yield
        finally:
            if http is not None:
                await http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Stakeholder Interview Orchestrator",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(interview_router)
    app.include_router(sessions_router)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; turn logic lives in services and the orchestrator.
