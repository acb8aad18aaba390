"""
interview_orchestrator.orchestrator.parsing

Tolerant parsers for free-text replies from the text-generation service, plus the
heuristic fallback tables used when a reply is missing or unparseable.

Responsibilities:
- Turn `TOPIC:x | GENERAL:yes | CONFIDENCE:0.8 | REASONING:...` into explicit optional fields.
- Keep every keyword table and fallback value in one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FALLBACK_TOPIC = "general_inquiry"
FALLBACK_GOAL = "general_consensus"
FALLBACK_CONSENSUS = "The team discussed the topic and shared various perspectives."

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "safety": ("safety", "safe", "risk", "danger", "accident"),
    "communication": ("talk", "speak", "communicate", "discuss", "conversation"),
    "teamwork": ("team", "collaborate", "together", "group", "cooperation"),
    "leadership": ("lead", "manage", "supervise", "direct", "guide"),
    "training": ("learn", "teach", "train", "education", "skill"),
    "process": ("process", "procedure", "workflow", "method", "approach"),
}

# Checked in order; the first matching rule wins.
GOAL_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("tech_stack", ("tech stack",)),
    ("approach", ("approach", "solution")),
    ("plan", ("plan",)),
    ("requirements", ("requirements",)),
    ("architecture", ("architecture",)),
    ("conflict_resolution", ("conflict", "solve it")),
)

FOLLOW_UP_PHRASES: tuple[str, ...] = (
    "what about",
    "can you explain",
    "tell me more",
    "why",
    "how",
    "what do you mean",
)

COLLABORATION_PHRASES: tuple[str, ...] = (
    "discuss",
    "together",
    "agree on",
    "as a team",
    "jointly",
    "collaborate",
    "work together",
    "consensus",
    "decide together",
    "decide",
    "team decision",
    "what do you all think",
    "reach agreement",
    "come to a decision",
    "solve it",
    "talk to each other",
    "work it out",
    "figure out together",
)

OUT_OF_CHARACTER_PHRASES: tuple[str, ...] = (
    "as an ai",
    "language model",
    "i cannot",
    "i don't have access",
    "i'm not able to",
    "as a chatbot",
    "i'm programmed",
    "as an artificial",
)

PERSONALITY_VOCABULARY: dict[str, tuple[str, ...]] = {
    "cautious": ("careful", "hesitant", "concerned", "worried", "prudent", "conservative"),
    "bold": ("confident", "assertive", "direct", "strong", "definitive", "certain"),
    "practical": ("realistic", "pragmatic", "hands-on", "efficient", "logical", "straightforward"),
    "analytical": ("detailed", "thorough", "systematic", "methodical", "precise", "data-driven"),
    "creative": ("innovative", "imaginative", "flexible", "adaptable", "original", "inventive"),
    "supportive": ("helpful", "encouraging", "collaborative", "understanding", "patient", "kind"),
    "detail-oriented": ("specific", "precise", "thorough", "meticulous", "exact", "comprehensive"),
    "enthusiastic": ("excited", "energetic", "passionate", "motivated", "eager", "positive"),
}

COLLABORATIVE_VOCABULARY: tuple[str, ...] = (
    "agree",
    "disagree",
    "build on",
    "add to",
    "like you said",
    "building on",
    "i think",
    "but",
    "however",
    "let me add",
)

QUESTION_PHRASES: tuple[str, ...] = ("what do you think", "how about", "would you", "should we")

_FIELD_END = r"(?=\||\n|$)"
_TOPIC_RE = re.compile(r"TOPIC:\s*\[?([^|\]\n]+?)\]?\s*" + _FIELD_END, re.IGNORECASE)
_GENERAL_RE = re.compile(r"GENERAL:\s*\[?\s*(yes|no)\b", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"CONFIDENCE:\s*\[?\s*([01](?:\.\d+)?|\.\d+)", re.IGNORECASE)
_REASONING_RE = re.compile(r"REASONING:\s*\[?(.+?)\]?\s*$", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True, slots=True)
class ParsedClassification:
    """Each field is None when the reply did not carry a usable value for it."""

    topic: str | None = None
    general: bool | None = None
    confidence: float | None = None
    reasoning: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.topic is None and self.general is None and self.confidence is None


def parse_classification(text: str | None) -> ParsedClassification:
    if not text or not text.strip():
        return ParsedClassification()

    topic = None
    if m := _TOPIC_RE.search(text):
        candidate = m.group(1).strip().strip("[]").strip().lower()
        topic = candidate or None

    general = None
    if m := _GENERAL_RE.search(text):
        general = m.group(1).lower() == "yes"

    confidence = None
    if m := _CONFIDENCE_RE.search(text):
        value = float(m.group(1))
        if 0.0 <= value <= 1.0:
            confidence = value

    reasoning = None
    if m := _REASONING_RE.search(text):
        reasoning = m.group(1).strip() or None

    return ParsedClassification(
        topic=topic, general=general, confidence=confidence, reasoning=reasoning
    )


def parse_summary(text: str | None) -> str | None:
    """A summary is usable when it is non-empty after trimming."""
    if text is None:
        return None
    cleaned = text.strip()
    return cleaned or None


def heuristic_topic(content: str) -> str:
    lowered = content.lower()
    for topic, keywords in TOPIC_KEYWORDS.items():
        if any(k in lowered for k in keywords):
            return topic
    return FALLBACK_TOPIC


def collaboration_goal(content: str) -> str:
    lowered = content.lower()
    for goal, keywords in GOAL_KEYWORDS:
        if any(k in lowered for k in keywords):
            return goal
    return FALLBACK_GOAL


def is_collaboration_prompt(content: str) -> bool:
    lowered = content.lower()
    return any(phrase in lowered for phrase in COLLABORATION_PHRASES)


def is_out_of_character(content: str) -> bool:
    lowered = content.lower()
    return any(phrase in lowered for phrase in OUT_OF_CHARACTER_PHRASES)


def personality_words(personality: str) -> tuple[str, ...]:
    lowered = personality.lower()
    for trait, words in PERSONALITY_VOCABULARY.items():
        if trait in lowered:
            return words
    return ()


def shows_personality(content: str, personality: str) -> bool:
    lowered = content.lower()
    candidates = [*personality.lower().split(), *personality_words(personality)]
    return any(word in lowered for word in candidates)


# --- Module Notes -----------------------------------------------------------
# Parsers never raise on malformed model output; a missing field is a None, and the
# calling step decides which fallback from this module to apply.
