"""
interview_orchestrator.orchestrator.selection

Speaker selection step: decide which personas are engaged for this turn.

Responsibilities:
- Apply instructor overrides (all personas, forced round-robin order).
- Branch on classified intent (targeted, follow-up, general).
- Score personas for general questions with recency and fairness heuristics.
- Guard against a persona replying to itself and handle the one-persona roster.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.models import ClassificationResult, Intent, Persona
from interview_orchestrator.orchestrator.state import ConversationState

log = get_logger(__name__)

LAST_SPEAKER_PENALTY = 0.8
RECENT_PENALTY = 0.6
IMMEDIATE_PENALTY = 0.4
UNDERUSED_BOOST = 0.5
UNDERUSED_RATIO = 0.8
TOPIC_BOOST = 0.5
SECONDARY_SPEAKER_THRESHOLD = 0.6


@dataclass(frozen=True, slots=True)
class ScoredPersona:
    persona: Persona
    score: float


def score_personas(
    roster: Sequence[Persona],
    *,
    topic: str,
    last_speaker: str | None,
    recent_speakers: Sequence[str],
    turn_history: dict[str, int],
) -> list[ScoredPersona]:
    """
    Fairness-weighted scores for a general question, highest first.

    Ties keep roster order (`sorted` is stable).
    """

    avg_turns = sum(turn_history.values()) / max(len(turn_history), 1)
    last_two = list(recent_speakers[-2:])
    last_one = list(recent_speakers[-1:])
    topic_key = topic.lower()

    scored: list[ScoredPersona] = []
    for persona in roster:
        score = 1.0
        if persona.name == last_speaker:
            score -= LAST_SPEAKER_PENALTY
        if persona.name in last_two:
            score -= RECENT_PENALTY
        if persona.name in last_one:
            score -= IMMEDIATE_PENALTY
        if turn_history.get(persona.name, 0) < avg_turns * UNDERUSED_RATIO:
            score += UNDERUSED_BOOST
        if topic_key and topic_key in persona.profile_text():
            score += TOPIC_BOOST
        scored.append(ScoredPersona(persona=persona, score=score))

    return sorted(scored, key=lambda s: s.score, reverse=True)


def general_speaker_count(confidence: float) -> int:
    return min(3, max(2, round(confidence * 3)))


def select_for_general(state: ConversationState, analysis: ClassificationResult) -> list[Persona]:
    scored = score_personas(
        state.get("roster", []),
        topic=analysis.topic,
        last_speaker=state.get("last_speaker"),
        recent_speakers=state.get("recent_speakers", []),
        turn_history=state.get("turn_history", {}),
    )
    positive = [s for s in scored if s.score > 0]
    return [s.persona for s in positive[: general_speaker_count(analysis.confidence)]]


def select_for_follow_up(state: ConversationState, rng: random.Random) -> list[Persona]:
    roster = state.get("roster", [])
    last_speaker = state.get("last_speaker")
    current = next((p for p in roster if p.name == last_speaker), None)
    if current is None:
        return []

    selected = [current]
    previous = state.get("recent_speakers", [])[-1:]
    others = [p for p in roster if p.name != last_speaker and p.name not in previous]
    if others and rng.random() > SECONDARY_SPEAKER_THRESHOLD:
        selected.append(others[0])
    return selected


def apply_forced_order(
    roster: Sequence[Persona], order: Sequence[str] | None, turn_count: int
) -> list[Persona] | None:
    if not order:
        return None
    by_name = {p.name: p for p in roster}
    ordered = [by_name[name] for name in order if name in by_name]
    if not ordered:
        return None
    return [ordered[turn_count % len(ordered)]]


def _count_turns(history: dict[str, int], selected: Sequence[Persona]) -> dict[str, int]:
    updated = dict(history)
    for persona in selected:
        updated[persona.name] = updated.get(persona.name, 0) + 1
    return updated


async def select_speakers_node(state: ConversationState, *, rng: random.Random) -> dict[str, Any]:
    roster = list(state.get("roster", []))
    policy = state["policy"]
    analysis = state.get("classification")
    turn_count = state.get("turn_count", 0)
    last_speaker = state.get("last_speaker")

    if policy.require_all_personas:
        selected = list(roster)
        reason = "instructor requires all personas"
    elif analysis is None:
        selected = [roster[turn_count % len(roster)]] if roster else []
        reason = "no classification; round robin"
    elif analysis.intent == Intent.targeted:
        selected = [p for p in roster if p.name in analysis.target_personas]
        reason = "targeted"
    elif analysis.intent == Intent.follow_up:
        selected = select_for_follow_up(state, rng)
        reason = "follow-up"
    else:
        selected = select_for_general(state, analysis)
        reason = "fairness-weighted general selection"

    forced = apply_forced_order(roster, policy.forced_persona_order, turn_count)
    if forced is not None:
        selected = forced
        reason = "instructor forced order"

    if len(roster) == 1:
        selected = [roster[0]]
        log.info("speakers_selected", speakers=[roster[0].name], reason="single persona roster")
        return {
            "engaged": selected,
            "turn_history": _count_turns(state.get("turn_history", {}), selected),
            "last_speaker": None,
            "routing_notes": [f"select: single persona roster ({roster[0].name})"],
            "last_action": f"routed_to_single_persona_{roster[0].name}",
        }

    selected = [p for p in selected if p.name != last_speaker]
    if not selected:
        alternatives = [p for p in roster if p.name != last_speaker]
        selected = alternatives[:1] or roster[:1]
        reason += "; fallback avoiding last speaker"

    names = [p.name for p in selected]
    log.info("speakers_selected", speakers=names, reason=reason, last_speaker=last_speaker)
    return {
        "engaged": selected,
        "turn_history": _count_turns(state.get("turn_history", {}), selected),
        "routing_notes": [f"select: {reason} -> {', '.join(names)}"],
        "last_action": f"routed_to_{len(selected)}_personas",
    }


# --- Module Notes -----------------------------------------------------------
# The single-persona branch clears last_speaker so the only persona may answer on
# consecutive turns; every larger roster goes through the last-speaker guard instead.
