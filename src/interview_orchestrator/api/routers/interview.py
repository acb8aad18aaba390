"""
interview_orchestrator.api.routers.interview

Interview turn endpoint.

Responsibilities:
- Accept one student message with the roster and prior transcript.
- Map invalid input to 400 and apology envelopes to 500.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from interview_orchestrator.api.deps import db_session, settings_dep, text_generator_dep
from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import InvalidTurnInput
from interview_orchestrator.services.interview_service import InterviewService, TurnRequest
from interview_orchestrator.settings import Settings
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["interview"])


@router.post("/interview")
async def interview_turn(
    body: TurnRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    generator: TextGenerator = Depends(text_generator_dep),
) -> JSONResponse:
    svc = InterviewService(settings=settings, generator=generator, session=session)
    try:
        envelope = await svc.run_turn(body)
    except InvalidTurnInput as e:
        log.info("interview_turn_rejected", reason=e.reason, details=e.details)
        return JSONResponse({"error": e.reason}, status_code=HTTP_400_BAD_REQUEST)

    if "error" in envelope:
        return JSONResponse(envelope, status_code=HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(envelope)
