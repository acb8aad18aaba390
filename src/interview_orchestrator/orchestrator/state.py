"""
interview_orchestrator.orchestrator.state

Typed state schema threaded through the interview graph.

Responsibilities:
- Define the contract between steps (inputs/outputs).
- Keep conversation data and per-invocation control flags in one explicit shape.
"""

from __future__ import annotations

from typing import Annotated, TypedDict

from interview_orchestrator.orchestrator.models import (
    ClassificationResult,
    InstructorPolicy,
    Message,
    Persona,
    PersonaReply,
)
from interview_orchestrator.orchestrator.reducers import append_only

# The recency window never holds more than this many speaker names.
RECENCY_WINDOW = 8


class ConversationState(TypedDict, total=False):
    session_id: str

    # Full roster (never filtered) vs. the working subset for this turn
    roster: list[Persona]
    engaged: list[Persona]

    # Transcript
    messages: Annotated[list[Message], append_only]
    last_speaker: str | None
    context: str
    summary: str

    # Fairness bookkeeping
    turn_history: dict[str, int]
    recent_speakers: list[str]
    turn_count: int

    # Policy + analysis
    policy: InstructorPolicy
    classification: ClassificationResult | None
    consensus: dict[str, list[str]]
    active_goal: str | None

    # Interpreter controls
    iterations: int
    next_step: str | None
    halted: bool
    replies: list[PersonaReply]
    last_generator: str | None
    # Message ids of the latest generated batch, and of every batch the validator turned down
    batch: list[str]
    rejected: Annotated[list[str], append_only]
    validation_failures: int
    consensus_emitted: bool
    collaboration_fired: bool
    summarized: bool
    last_action: str

    # Diagnostics
    routing_notes: Annotated[list[str], append_only]


def latest_message(state: ConversationState) -> Message | None:
    messages = state.get("messages", [])
    return messages[-1] if messages else None


def current_batch(state: ConversationState) -> list[Message]:
    ids = set(state.get("batch", []))
    return [m for m in state.get("messages", []) if m.id in ids]


# --- Module Notes -----------------------------------------------------------
# Steps never mutate the incoming mapping; they return partial updates that LangGraph
# merges into a fresh snapshot (see reducers.append_only for the transcript).
