"""
interview_orchestrator.orchestrator.models

Value types shared by the orchestrator, the service layer and the API.

Responsibilities:
- Persona, Message, InstructorPolicy, ClassificationResult and PersonaReply.
- camelCase wire aliases so transcripts round-trip with the chat UI unchanged.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Metadata keys are part of the transcript wire format.
META_CONFIDENCE = "confidence"
META_REASONING = "reasoning"
META_DISCUSSION_ROUND = "discussionRound"
META_SPEAKING_ORDER = "speakingOrder"
META_COLLABORATION_GOAL = "collaborationGoal"
META_COLLABORATION_SUMMARY = "isCollaborationSummary"
META_PARTICIPANT_COUNT = "participantCount"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Sender(enum.StrEnum):
    student = "student"
    persona = "persona"
    system = "system"


class Intent(enum.StrEnum):
    targeted = "targeted"
    general = "general"
    follow_up = "follow_up"


class Persona(_WireModel):
    name: str = Field(min_length=1)
    initials: str = ""
    role: str = ""
    goal: str = ""
    concerns: str = ""
    personality: str = ""

    def profile_text(self) -> str:
        # Topic relevance is judged against role, goal and concerns only.
        return f"{self.role} {self.goal} {self.concerns}".lower()


class Message(_WireModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sender: Sender
    persona_name: str | None = None
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _persona_needs_name(self) -> Message:
        if self.sender == Sender.persona and not self.persona_name:
            raise ValueError("persona messages require persona_name")
        return self

    @property
    def confidence(self) -> float | None:
        value = self.metadata.get(META_CONFIDENCE)
        return float(value) if isinstance(value, int | float) else None

    def speaker_label(self) -> str:
        if self.sender == Sender.student:
            return "Student"
        if self.sender == Sender.system:
            return "System"
        return self.persona_name or "Unknown"


class InstructorPolicy(_WireModel):
    require_all_personas: bool = False
    max_response_length: int | None = Field(default=None, gt=0)
    forced_persona_order: tuple[str, ...] | None = None
    personality_emphasis: bool = False
    summary_interval: int = Field(default=20, gt=0)


class ClassificationResult(_WireModel):
    intent: Intent
    target_personas: tuple[str, ...] = ()
    topic: str = "general_inquiry"
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    collaboration_goal: str | None = None
    collaboration_requested: bool = False


class PersonaReply(_WireModel):
    persona_name: str
    content: str
    agent_id: str
    confidence: float
    reasoning: str | None = None


# --- Module Notes -----------------------------------------------------------
# All models are frozen: steps build new values instead of editing shared ones.
