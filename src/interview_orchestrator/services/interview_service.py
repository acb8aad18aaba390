"""
interview_orchestrator.services.interview_service

Interview turn service (input validation + envelope owner).

Responsibilities:
- Validate the inbound turn and bootstrap a fresh ConversationState from the transcript.
- Build and execute the interview graph with the configured generator and random source.
- Assemble the reply envelope and append the new messages to the stored session.
- Convert unexpected failures into an apology envelope instead of raising.
"""

from __future__ import annotations

import random
import uuid
from collections import Counter
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from interview_orchestrator.db.repositories.sessions import SessionRepo
from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import InvalidTurnInput
from interview_orchestrator.orchestrator.graph import TurnOutcome, build_graph, execute
from interview_orchestrator.orchestrator.memory import should_summarize
from interview_orchestrator.orchestrator.models import (
    InstructorPolicy,
    Message,
    Persona,
    Sender,
)
from interview_orchestrator.orchestrator.state import ConversationState
from interview_orchestrator.settings import Settings
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

MISSING_FIELDS = "Missing required fields"
TURN_FAILED = "Failed to process interview message"
APOLOGY = "I apologize, but there was an error processing your message. Please try again."
SEEDED_RECENT_SPEAKERS = 6


class TurnRequest(BaseModel):
    """
    Inbound turn as sent by the chat UI (camelCase accepted).

    Personas, history and policy stay loosely typed here so that malformed entries
    surface as `InvalidTurnInput` rather than a framework validation error.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    message: str | None = None
    personas: list[dict[str, Any]] = Field(default_factory=list)
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)
    session_id: str | None = None
    instructor_config: dict[str, Any] | None = None
    conversation_summary: str | None = None


def resolve_policy(
    config: dict[str, Any] | None, *, default_summary_interval: int
) -> InstructorPolicy:
    policy = InstructorPolicy.model_validate(config or {})
    if "summary_interval" not in policy.model_fields_set:
        policy = policy.model_copy(update={"summary_interval": default_summary_interval})
    return policy


def build_initial_state(
    *,
    message: str,
    roster: list[Persona],
    history: list[Message],
    policy: InstructorPolicy,
    session_id: str,
    summary: str = "",
) -> ConversationState:
    persona_authors = [
        m.persona_name for m in history if m.sender == Sender.persona and m.persona_name
    ]
    last = history[-1] if history else None
    last_speaker = None
    if last is not None and last.sender == Sender.persona:
        last_speaker = last.persona_name

    return {
        "session_id": session_id,
        "roster": roster,
        "engaged": [],
        "messages": [*history, Message(sender=Sender.student, content=message)],
        "last_speaker": last_speaker,
        "context": "",
        "summary": summary,
        "turn_history": dict(Counter(persona_authors)),
        "recent_speakers": persona_authors[-SEEDED_RECENT_SPEAKERS:],
        "turn_count": len(history),
        "policy": policy,
        "classification": None,
        "consensus": {},
        "active_goal": None,
        "iterations": 0,
        "next_step": None,
        "halted": False,
        "replies": [],
        "last_generator": None,
        "batch": [],
        "rejected": [],
        "validation_failures": 0,
        "consensus_emitted": False,
        "collaboration_fired": False,
        "summarized": False,
        "last_action": "workflow_started",
        "routing_notes": [],
    }


def error_envelope(error: str = TURN_FAILED) -> dict[str, Any]:
    return {
        "error": error,
        "responses": [
            {"personaName": "System", "content": APOLOGY, "id": "system", "confidence": 0.1}
        ],
    }


def turn_messages(outcome: TurnOutcome, *, history_length: int) -> list[Message]:
    """
    Transcript entries this turn adds.

    Batches the validator turned down are left out; an exhausted turn keeps only the
    student's message.
    """

    new = list(outcome.state.get("messages", []))[history_length:]
    if outcome.exhausted:
        return [m for m in new if m.sender == Sender.student]
    rejected = set(outcome.state.get("rejected", []))
    return [m for m in new if m.id not in rejected]


def build_envelope(
    *, initial: ConversationState, outcome: TurnOutcome, history_length: int
) -> dict[str, Any]:
    final = outcome.state
    policy: InstructorPolicy = final.get("policy", initial["policy"])
    analysis = final.get("classification")
    added = turn_messages(outcome, history_length=history_length)
    replies = outcome.replies

    return {
        "responses": [
            {
                "personaName": r.persona_name,
                "content": r.content,
                "id": r.agent_id,
                "confidence": r.confidence,
            }
            for r in replies
        ],
        "messages": [m.model_dump(by_alias=True, mode="json") for m in added],
        "metadata": {
            "totalPersonas": len(initial["roster"]),
            "respondingPersonas": len(replies),
            "conversationLength": history_length + len(added),
            "sessionId": initial["session_id"],
            "workflowComplete": bool(final.get("halted")) and not outcome.exhausted,
            "analysisResult": (
                analysis.model_dump(by_alias=True, mode="json") if analysis is not None else None
            ),
            "qualityScores": [r.confidence for r in replies],
            "turnHistory": dict(final.get("turn_history", {})),
            "collaborativeGoals": dict(final.get("consensus", {})),
            "instructorConfig": policy.model_dump(by_alias=True, mode="json"),
            "debugInfo": {
                "routing": list(final.get("routing_notes", [])),
                "replyReasoning": [r.reasoning for r in replies],
                "previousSpeakers": list(final.get("recent_speakers", [])),
                "currentSpeaker": final.get("last_speaker"),
                "collaborationDetected": bool(final.get("collaboration_fired")),
                "hasCollaborationSummary": bool(final.get("consensus_emitted")),
                "iterations": final.get("iterations", 0),
                "validationFailures": final.get("validation_failures", 0),
                "iterationCeilingReached": outcome.exhausted,
                "memoryManagement": {
                    "summaryInterval": policy.summary_interval,
                    "shouldSummarize": should_summarize(initial),
                    "summarized": bool(final.get("summarized")),
                    "conversationSummary": final.get("summary", ""),
                },
            },
        },
    }


class InterviewService:
    def __init__(
        self,
        *,
        settings: Settings,
        generator: TextGenerator,
        session: AsyncSession | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._generator = generator
        self._session = session
        self._rng = rng if rng is not None else random.Random(settings.random_seed)

    def _parse(
        self, request: TurnRequest
    ) -> tuple[str, list[Persona], list[Message], InstructorPolicy]:
        message = (request.message or "").strip()
        if not message or not request.personas:
            raise InvalidTurnInput(MISSING_FIELDS)

        try:
            roster = [Persona.model_validate(p) for p in request.personas]
            history = [Message.model_validate(m) for m in request.conversation_history]
            policy = resolve_policy(
                request.instructor_config,
                default_summary_interval=self._settings.default_summary_interval,
            )
        except ValidationError as e:
            raise InvalidTurnInput(
                "Malformed interview turn", details={"errors": e.errors(include_url=False)}
            ) from e

        duplicates = sorted(n for n, c in Counter(p.name for p in roster).items() if c > 1)
        if duplicates:
            raise InvalidTurnInput("Duplicate persona names", details={"names": duplicates})
        return message, roster, history, policy

    async def run_turn(self, request: TurnRequest) -> dict[str, Any]:
        """
        Runs one student turn.

        Raises `InvalidTurnInput` for unusable input; every other failure is returned as
        the apology envelope (an `error` key plus one system reply).
        """

        message, roster, history, policy = self._parse(request)
        session_id = request.session_id or f"session-{uuid.uuid4().hex[:12]}"

        with structlog.contextvars.bound_contextvars(session_id=session_id):
            try:
                initial = build_initial_state(
                    message=message,
                    roster=roster,
                    history=history,
                    policy=policy,
                    session_id=session_id,
                    summary=request.conversation_summary or "",
                )
                graph = build_graph(generator=self._generator, rng=self._rng)
                outcome = await execute(
                    graph, initial, max_iterations=self._settings.max_iterations
                )
                envelope = build_envelope(
                    initial=initial, outcome=outcome, history_length=len(history)
                )
                if self._session is not None and request.session_id:
                    await _persist(
                        self._session, session_id=session_id, envelope=envelope, outcome=outcome
                    )
            except Exception:
                log.exception("interview_turn_failed")
                return error_envelope()

        log.info(
            "interview_turn_complete",
            session_id=session_id,
            replies=len(outcome.replies),
            iterations=outcome.state.get("iterations", 0),
            exhausted=outcome.exhausted,
        )
        return envelope


async def _persist(
    session: AsyncSession, *, session_id: str, envelope: dict[str, Any], outcome: TurnOutcome
) -> None:
    await SessionRepo(session).append_messages(
        session_id=session_id,
        messages=envelope["messages"],
        personas=[r.persona_name for r in outcome.replies],
    )
    await session.commit()


# --- Module Notes -----------------------------------------------------------
# Only the session store is durable; the ConversationState is rebuilt from the caller's
# transcript on every turn and dropped once the envelope is built.
