"""
interview_orchestrator.api.routers.sessions

Interview session storage endpoints (list, save/update, delete).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST

from interview_orchestrator.api.deps import db_session
from interview_orchestrator.db.models import InterviewSession, SessionStatus
from interview_orchestrator.db.repositories.sessions import SessionRepo
from interview_orchestrator.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])

SESSION_ID_REQUIRED = "Session ID required"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class SessionIn(_CamelModel):
    session_id: str | None = None
    project_name: str = ""
    student_name: str = ""
    status: SessionStatus = SessionStatus.active
    messages: list[dict[str, Any]] = Field(default_factory=list)
    personas_interviewed: list[str] = Field(default_factory=list)
    requirements_extracted: bool = False
    transcript_downloaded: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None


class SessionOut(_CamelModel):
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, from_attributes=True
    )

    session_id: str
    project_name: str
    student_name: str
    status: SessionStatus
    messages: list[dict[str, Any]]
    personas_interviewed: list[str]
    requirements_extracted: bool
    transcript_downloaded: bool
    start_time: datetime
    end_time: datetime | None
    updated_at: datetime


def _out(row: InterviewSession) -> dict[str, Any]:
    return SessionOut.model_validate(row).model_dump(by_alias=True, mode="json")


@router.get("")
async def list_sessions(
    project_name: str | None = Query(default=None, alias="projectName"),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows = await SessionRepo(session).list(project_name=project_name)
    return {"sessions": [_out(r) for r in rows]}


@router.post("", response_model=None)
async def save_session(
    body: SessionIn,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any] | JSONResponse:
    if not body.session_id:
        return JSONResponse({"error": SESSION_ID_REQUIRED}, status_code=HTTP_400_BAD_REQUEST)

    repo = SessionRepo(session)
    await repo.upsert(
        session_id=body.session_id,
        project_name=body.project_name,
        student_name=body.student_name,
        status=body.status,
        messages=body.messages,
        personas_interviewed=body.personas_interviewed,
        requirements_extracted=body.requirements_extracted,
        transcript_downloaded=body.transcript_downloaded,
        start_time=_naive_utc(body.start_time),
        end_time=_naive_utc(body.end_time),
    )
    await session.commit()
    total = await repo.count()
    log.info("session_saved", session_id=body.session_id, total_sessions=total)
    return {"success": True, "sessionId": body.session_id, "totalSessions": total}


@router.delete("", response_model=None)
async def delete_session(
    session_id: str | None = Query(default=None, alias="sessionId"),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any] | JSONResponse:
    if not session_id:
        return JSONResponse({"error": SESSION_ID_REQUIRED}, status_code=HTTP_400_BAD_REQUEST)

    deleted = await SessionRepo(session).delete(session_id)
    await session.commit()
    return {"success": deleted, "message": "Session deleted" if deleted else "Session not found"}


def _naive_utc(value: datetime | None) -> datetime | None:
    # Stored timestamps are naive UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
