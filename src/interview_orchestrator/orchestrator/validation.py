"""
interview_orchestrator.orchestrator.validation

Quality gate over the replies generated this turn.

Responsibilities:
- Reject replies that are too short, out of character, low confidence, or look like errors.
- Hand control back to the generator that produced the failing batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.models import Message
from interview_orchestrator.orchestrator.parsing import is_out_of_character
from interview_orchestrator.orchestrator.state import ConversationState, current_batch

log = get_logger(__name__)

MIN_REPLY_CHARS = 15
MIN_COMBINED_CONFIDENCE = 0.5
DEFAULT_CONFIDENCE = 0.5
ERROR_MARKERS = ("error", "failed")


def rejection_reason(message: Message, *, classification_confidence: float) -> str | None:
    """Returns why a reply fails the gate, or None when it passes."""
    content = message.content
    if len(content) < MIN_REPLY_CHARS:
        return "too_short"
    if is_out_of_character(content):
        return "out_of_character"
    own = message.confidence
    combined = (classification_confidence + (own if own is not None else DEFAULT_CONFIDENCE)) / 2
    if combined < MIN_COMBINED_CONFIDENCE:
        return "low_confidence"
    # Case-sensitive.
    if any(marker in content for marker in ERROR_MARKERS):
        return "error_text"
    return None


def first_rejection(
    messages: Sequence[Message], *, classification_confidence: float
) -> tuple[Message, str] | None:
    for message in messages:
        reason = rejection_reason(message, classification_confidence=classification_confidence)
        if reason is not None:
            return message, reason
    return None


async def validate_responses_node(state: ConversationState) -> dict[str, Any]:
    batch = current_batch(state)
    analysis = state.get("classification")
    classification_confidence = analysis.confidence if analysis else DEFAULT_CONFIDENCE

    rejected = first_rejection(batch, classification_confidence=classification_confidence)
    if rejected is None:
        log.info("responses_validated", count=len(batch))
        return {"last_action": "validation_passed"}

    message, reason = rejected
    retry = state.get("last_generator")
    failures = state.get("validation_failures", 0) + 1
    log.warning(
        "responses_rejected",
        persona=message.persona_name,
        reason=reason,
        retry_step=retry,
        failures=failures,
    )
    return {
        "next_step": retry,
        "validation_failures": failures,
        "rejected": [m.id for m in batch],
        "routing_notes": [f"validate: {message.persona_name} rejected ({reason})"],
        "last_action": "validation_failed",
    }
