"""
interview_orchestrator.orchestrator.nodes

Terminal step and the conditional routers of the interview graph.

Responsibilities:
- Package the turn's persona messages as replies and stop the graph.
- Route after classification, speaker selection and collaborative discussion.

Routers are pure functions of state; they never write to it.
"""

from __future__ import annotations

from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.generation import discussion_messages, reply_from_message
from interview_orchestrator.orchestrator.memory import should_summarize
from interview_orchestrator.orchestrator.state import ConversationState, current_batch
from interview_orchestrator.orchestrator.steps import Step

log = get_logger(__name__)

RETRY_CONFIDENCE = 0.4
CONSENSUS_MIN_MESSAGES = 3


async def format_output_node(state: ConversationState) -> dict[str, Any]:
    replies = [reply_from_message(m) for m in current_batch(state)]
    log.info("turn_formatted", replies=[r.persona_name for r in replies])
    return {"replies": replies, "halted": True, "last_action": "output_formatted"}


def route_after_classify(state: ConversationState) -> Step:
    analysis = state.get("classification")
    if analysis is None or analysis.confidence < RETRY_CONFIDENCE:
        return Step.classify_input
    if should_summarize(state):
        return Step.summarize_memory
    return Step.select_speakers


def route_after_select(state: ConversationState) -> Step:
    analysis = state.get("classification")
    engaged = state.get("engaged", [])
    if analysis is not None and analysis.collaboration_requested and len(engaged) > 1:
        return Step.generate_collaborative
    return Step.generate_individual


def route_after_collaboration(state: ConversationState) -> Step:
    goal = state.get("active_goal")
    if goal is None or state.get("consensus_emitted"):
        return Step.validate_responses
    if len(discussion_messages(state, goal)) >= CONSENSUS_MIN_MESSAGES:
        return Step.summarize_consensus
    return Step.validate_responses
