"""
interview_orchestrator.db.models

Persistence schema for interview sessions.

Responsibilities:
- InterviewSession: one student's interview with a project's personas, including the
  full transcript and the bookkeeping flags the instructor views read.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from interview_orchestrator.db.base import Base


def utcnow() -> datetime:
    # Naive UTC; SQLite has no timezone-aware column type.
    return datetime.now(UTC).replace(tzinfo=None)


class SessionStatus(enum.StrEnum):
    active = "active"
    completed = "completed"
    abandoned = "abandoned"


class InterviewSession(Base):
    __tablename__ = "interview_sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    project_name: Mapped[str] = mapped_column(String(256), nullable=False, default="", index=True)
    student_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")

    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus), nullable=False, default=SessionStatus.active
    )

    # Wire-format (camelCase) message dicts, oldest first.
    messages: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    personas_interviewed: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    requirements_extracted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    transcript_downloaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    start_time: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)
