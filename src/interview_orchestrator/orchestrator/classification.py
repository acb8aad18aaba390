"""
interview_orchestrator.orchestrator.classification

Classification step: infer intent, topic and collaboration goal for the newest student message.

Responsibilities:
- Detect direct targeting by persona name, initials or role.
- Detect follow-up phrasing and short general questions.
- Ask the text-generation service for a topic; fall back to keyword heuristics.
- Refresh the rolling topic summary.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import TextGenerationError
from interview_orchestrator.orchestrator.models import (
    ClassificationResult,
    Intent,
    Persona,
    Sender,
)
from interview_orchestrator.orchestrator.parsing import (
    FOLLOW_UP_PHRASES,
    ParsedClassification,
    collaboration_goal,
    heuristic_topic,
    is_collaboration_prompt,
    parse_classification,
)
from interview_orchestrator.orchestrator.prompts import (
    CLASSIFICATION_SAMPLING,
    classification_prompt,
)
from interview_orchestrator.orchestrator.state import ConversationState, latest_message
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

TARGETED_CONFIDENCE = 0.95
FOLLOW_UP_CONFIDENCE = 0.85
SHORT_GENERAL_CONFIDENCE = 0.9
DEFAULT_CONFIDENCE = 0.7
AI_GENERAL_FLOOR = 0.85
SHORT_MESSAGE_CHARS = 20
SUMMARY_TOPICS_KEPT = 3


def _mentions_word(lowered: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word.lower())}\b", lowered) is not None


def detect_targets(lowered: str, roster: Sequence[Persona]) -> list[str]:
    targets: list[str] = []
    for persona in roster:
        # Full name or role anywhere; initials and single name parts only as whole words.
        substrings = [s for s in (persona.name, persona.role) if s]
        words = [w for w in persona.name.split() if len(w) >= 3]
        if len(persona.initials) >= 2:
            words.append(persona.initials)
        if any(s.lower() in lowered for s in substrings) or any(
            _mentions_word(lowered, w) for w in words
        ):
            targets.append(persona.name)
    return targets


def has_role_keywords(lowered: str, roster: Sequence[Persona]) -> bool:
    keywords = [w for p in roster for w in p.role.lower().split() if len(w) > 3]
    return any(k in lowered for k in keywords)


def is_follow_up(lowered: str, last_speaker: str | None) -> bool:
    return last_speaker is not None and any(p in lowered for p in FOLLOW_UP_PHRASES)


def heuristic_intent(
    lowered: str, *, roster: Sequence[Persona], last_speaker: str | None
) -> tuple[Intent, list[str], float, str]:
    targets = detect_targets(lowered, roster)
    if targets:
        reasoning = f"Direct targeting of: {', '.join(targets)}"
        return Intent.targeted, targets, TARGETED_CONFIDENCE, reasoning
    if is_follow_up(lowered, last_speaker):
        return (
            Intent.follow_up,
            [],
            FOLLOW_UP_CONFIDENCE,
            "Follow-up question detected with previous speaker context",
        )
    if len(lowered) < SHORT_MESSAGE_CHARS and not has_role_keywords(lowered, roster):
        return (
            Intent.general,
            [],
            SHORT_GENERAL_CONFIDENCE,
            "Short general question requiring multiple perspectives",
        )
    return Intent.general, [], DEFAULT_CONFIDENCE, "Default general classification"


def refresh_summary(summary: str, topic: str) -> str:
    topics = [topic]
    if summary:
        topics.extend(summary.split(", ")[:SUMMARY_TOPICS_KEPT])
    return ", ".join(dict.fromkeys(t for t in topics if t))


async def _ask_topic(
    generator: TextGenerator, *, question: str, roster: Sequence[Persona], summary: str
) -> ParsedClassification:
    try:
        text = await generator.generate(
            classification_prompt(question=question, roster=roster, summary=summary),
            max_tokens=CLASSIFICATION_SAMPLING.max_tokens,
            temperature=CLASSIFICATION_SAMPLING.temperature,
        )
    except TextGenerationError as e:
        log.warning("classification_generation_failed", error=str(e))
        return ParsedClassification()
    return parse_classification(text)


async def classify_input_node(
    state: ConversationState, *, generator: TextGenerator
) -> dict[str, Any]:
    latest = latest_message(state)
    if latest is None or latest.sender != Sender.student:
        log.warning("classification_rejected_turn", has_message=latest is not None)
        return {"halted": True, "last_action": "classify_input_failed"}

    roster = state.get("roster", [])
    lowered = latest.content.lower()
    intent, targets, confidence, reasoning = heuristic_intent(
        lowered, roster=roster, last_speaker=state.get("last_speaker")
    )

    parsed = await _ask_topic(
        generator, question=latest.content, roster=roster, summary=state.get("summary", "")
    )
    if parsed.topic is None:
        topic = heuristic_topic(latest.content)
        log.info("classification_topic_fallback", topic=topic)
    else:
        topic = parsed.topic

    if parsed.general and intent == Intent.general:
        confidence = max(confidence, AI_GENERAL_FLOOR)
        reasoning += " | AI confirmed as general multi-perspective question"
    if parsed.confidence is not None and intent != Intent.targeted:
        confidence = min(confidence, parsed.confidence)
    if parsed.reasoning:
        reasoning += f" | AI: {parsed.reasoning}"

    requested = is_collaboration_prompt(latest.content)
    goal = None
    if not targets and (intent == Intent.general or requested):
        goal = collaboration_goal(latest.content)

    result = ClassificationResult(
        intent=intent,
        target_personas=tuple(targets),
        topic=topic,
        confidence=confidence,
        reasoning=reasoning,
        collaboration_goal=goal,
        collaboration_requested=requested,
    )
    log.info(
        "classified_input",
        intent=str(intent),
        targets=targets,
        topic=topic,
        confidence=confidence,
        collaboration_goal=goal,
    )
    return {
        "classification": result,
        "context": f"Intent: {intent}, Topic: {topic}, Confidence: {confidence}",
        "summary": refresh_summary(state.get("summary", ""), topic),
        "routing_notes": [f"classify: {reasoning}"],
        "last_action": "classify_input_complete",
    }


# --- Module Notes -----------------------------------------------------------
# A CONFIDENCE field reported by the model can only lower a non-targeted classification;
# name/initials/role matches stay authoritative.
