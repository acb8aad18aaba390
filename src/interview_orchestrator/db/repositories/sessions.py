from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_orchestrator.db.models import InterviewSession, SessionStatus, utcnow


class SessionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, session_id: str) -> InterviewSession | None:
        return await self._session.get(InterviewSession, session_id)

    async def list(self, *, project_name: str | None = None) -> list[InterviewSession]:
        stmt = select(InterviewSession).order_by(InterviewSession.start_time)
        if project_name is not None:
            stmt = stmt.where(InterviewSession.project_name == project_name)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        stmt = select(func.count()).select_from(InterviewSession)
        return int((await self._session.execute(stmt)).scalar_one())

    async def upsert(
        self,
        *,
        session_id: str,
        project_name: str = "",
        student_name: str = "",
        status: SessionStatus = SessionStatus.active,
        messages: Sequence[dict[str, Any]] = (),
        personas_interviewed: Sequence[str] = (),
        requirements_extracted: bool = False,
        transcript_downloaded: bool = False,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> InterviewSession:
        """Replaces every stored field of the session, creating it when absent."""
        row = await self.get(session_id)
        if row is None:
            row = InterviewSession(session_id=session_id)
            self._session.add(row)

        row.project_name = project_name
        row.student_name = student_name
        row.status = status
        row.messages = list(messages)
        row.personas_interviewed = list(personas_interviewed)
        row.requirements_extracted = requirements_extracted
        row.transcript_downloaded = transcript_downloaded
        row.start_time = start_time or row.start_time or utcnow()
        row.end_time = end_time
        row.updated_at = utcnow()
        await self._session.flush()
        return row

    async def append_messages(
        self,
        *,
        session_id: str,
        messages: Sequence[dict[str, Any]],
        personas: Sequence[str] = (),
    ) -> InterviewSession:
        row = await self.get(session_id)
        if row is None:
            row = InterviewSession(session_id=session_id, start_time=utcnow())
            self._session.add(row)

        # JSON columns are not mutation-tracked; assign fresh lists.
        row.messages = [*(row.messages or []), *messages]
        interviewed = list(row.personas_interviewed or [])
        for name in personas:
            if name not in interviewed:
                interviewed.append(name)
        row.personas_interviewed = interviewed
        row.updated_at = utcnow()
        await self._session.flush()
        return row

    async def delete(self, session_id: str) -> bool:
        row = await self.get(session_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True
