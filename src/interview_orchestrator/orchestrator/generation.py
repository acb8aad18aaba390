"""
interview_orchestrator.orchestrator.generation

Response generation steps.

Responsibilities:
- Individual mode: one independent in-character reply per engaged persona.
- Collaborative mode: sequential replies where later speakers see earlier ones.
- Consensus summarizer: a system-authored statement closing a team discussion.
- Confidence heuristics, length clamping, and canned fallbacks on service failure.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import TextGenerationError
from interview_orchestrator.orchestrator.models import (
    META_COLLABORATION_GOAL,
    META_COLLABORATION_SUMMARY,
    META_CONFIDENCE,
    META_DISCUSSION_ROUND,
    META_PARTICIPANT_COUNT,
    META_REASONING,
    META_SPEAKING_ORDER,
    ClassificationResult,
    InstructorPolicy,
    Intent,
    Message,
    Persona,
    PersonaReply,
    Sender,
)
from interview_orchestrator.orchestrator.parsing import (
    COLLABORATIVE_VOCABULARY,
    FALLBACK_CONSENSUS,
    FALLBACK_GOAL,
    QUESTION_PHRASES,
    collaboration_goal,
    is_out_of_character,
    parse_summary,
    shows_personality,
)
from interview_orchestrator.orchestrator.prompts import (
    CONSENSUS_SAMPLING,
    collaborative_prompt,
    consensus_prompt,
    fallback_reply,
    history_window,
    individual_prompt,
    reply_sampling,
)
from interview_orchestrator.orchestrator.state import (
    RECENCY_WINDOW,
    ConversationState,
    latest_message,
)
from interview_orchestrator.orchestrator.steps import Step
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.99
SHORT_REPLY_CHARS = 20
INDIVIDUAL_HISTORY_CAP = 10
COLLABORATIVE_HISTORY_CAP = 8
CHALLENGE_THRESHOLD = 0.6


@dataclass(frozen=True, slots=True)
class Draft:
    persona: Persona
    content: str
    confidence: float
    reasoning: str


def clamp_length(content: str, max_length: int | None) -> str:
    if max_length and len(content) > max_length:
        return content[: max(max_length - 3, 0)] + "..."
    return content


def _finish(confidence: float) -> float:
    return min(MAX_CONFIDENCE, round(confidence, 2))


def base_confidence(
    persona: Persona, analysis: ClassificationResult | None, *, default: float, topical: float
) -> float:
    if analysis is None:
        return default
    if analysis.intent == Intent.targeted and persona.name in analysis.target_personas:
        return 0.95
    if analysis.topic and analysis.topic.lower() in persona.profile_text():
        return topical
    return default


def individual_confidence(
    persona: Persona, content: str, *, base: float, policy: InstructorPolicy
) -> float:
    if is_out_of_character(content):
        return _finish(base * 0.2)
    if len(content) < SHORT_REPLY_CHARS:
        return _finish(base * 0.6)

    present = shows_personality(content, persona.personality)
    if policy.personality_emphasis:
        return _finish(base * (1.2 if present else 0.85))
    if present:
        return _finish(base * 1.1)
    return _finish(base)


def collaborative_confidence(
    persona: Persona,
    content: str,
    *,
    base: float,
    policy: InstructorPolicy,
    teammates: Sequence[Persona],
    first_speaker: bool,
) -> float:
    if is_out_of_character(content):
        return _finish(base * 0.2)
    if len(content) < SHORT_REPLY_CHARS:
        return _finish(base * 0.6)

    lowered = content.lower()
    bonus = 1.0
    if not first_speaker:
        if any(w in lowered for w in COLLABORATIVE_VOCABULARY):
            bonus += 0.15
        if any(q in lowered for q in QUESTION_PHRASES):
            bonus += 0.1
        names = [p.name.lower() for p in teammates if p.name != persona.name]
        if any(name in lowered for name in names):
            bonus += 0.2

    confidence = base * bonus
    if policy.personality_emphasis and persona.personality.lower() in lowered:
        confidence *= 1.1
    return _finish(confidence)


def _fallback_draft(persona: Persona, rng: random.Random, reasoning: str) -> Draft:
    return Draft(
        persona=persona,
        content=fallback_reply(persona, rng),
        confidence=FALLBACK_CONFIDENCE,
        reasoning=reasoning,
    )


async def generate_persona_reply(
    persona: Persona, state: ConversationState, *, generator: TextGenerator, rng: random.Random
) -> Draft:
    policy = state["policy"]
    question = latest_message(state)
    history = state.get("messages", [])[-history_window(policy, cap=INDIVIDUAL_HISTORY_CAP) :]
    prompt = individual_prompt(
        persona=persona,
        question=question.content if question else "",
        history=history,
        context=state.get("context", ""),
        summary=state.get("summary", ""),
        policy=policy,
    )
    sampling = reply_sampling(policy, collaborative=False)
    try:
        text = await generator.generate(
            prompt, max_tokens=sampling.max_tokens, temperature=sampling.temperature
        )
    except TextGenerationError as e:
        log.warning("persona_generation_failed", persona=persona.name, error=str(e))
        return _fallback_draft(persona, rng, "Fallback due to generation error")

    content = clamp_length(text.strip() or fallback_reply(persona, rng), policy.max_response_length)
    base = base_confidence(persona, state.get("classification"), default=0.7, topical=0.85)
    confidence = individual_confidence(persona, content, base=base, policy=policy)
    emphasized = " (EMPHASIZED)" if policy.personality_emphasis else ""
    return Draft(
        persona=persona,
        content=content,
        confidence=confidence,
        reasoning=(
            f'Generated as {persona.role} with personality "{persona.personality}"{emphasized}, '
            f"confidence: {round(confidence * 100)}%"
        ),
    )


def _turn_updates(
    state: ConversationState, drafts: Sequence[Draft], messages: list[Message], step: Step
) -> dict[str, Any]:
    names = [d.persona.name for d in drafts]
    recent = [*state.get("recent_speakers", []), *names][-RECENCY_WINDOW:]
    return {
        "messages": messages,
        "last_speaker": names[0] if len(names) == 1 else None,
        "turn_count": state.get("turn_count", 0) + 1,
        "recent_speakers": recent,
        "last_generator": step.value,
        "batch": [m.id for m in messages],
    }


async def generate_individual_node(
    state: ConversationState, *, generator: TextGenerator, rng: random.Random
) -> dict[str, Any]:
    roster = state.get("roster", [])
    engaged = state.get("engaged", [])
    last_speaker = state.get("last_speaker")

    if len(roster) == 1:
        eligible = list(engaged)
    else:
        eligible = [p for p in engaged if p.name != last_speaker]

    drafts: list[Draft] = []
    for persona in eligible:
        drafts.append(await generate_persona_reply(persona, state, generator=generator, rng=rng))

    if not drafts and len(roster) > 1:
        alternative = next((p for p in roster if p.name != last_speaker), None)
        if alternative is not None:
            log.info("individual_generation_substitute", persona=alternative.name)
            drafts.append(
                await generate_persona_reply(alternative, state, generator=generator, rng=rng)
            )

    messages = [
        Message(
            sender=Sender.persona,
            persona_name=d.persona.name,
            content=d.content,
            metadata={META_CONFIDENCE: d.confidence, META_REASONING: d.reasoning},
        )
        for d in drafts
    ]
    log.info(
        "individual_replies_generated",
        personas=[d.persona.name for d in drafts],
        confidences=[d.confidence for d in drafts],
    )
    return {
        **_turn_updates(state, drafts, messages, Step.generate_individual),
        "last_action": "responses_generated",
    }


def discussion_messages(state: ConversationState, goal: str | None) -> list[Message]:
    rejected = set(state.get("rejected", []))
    return [
        m
        for m in state.get("messages", [])
        if m.metadata.get(META_DISCUSSION_ROUND) is True
        and m.id not in rejected
        and (goal is None or m.metadata.get(META_COLLABORATION_GOAL) == goal)
    ]


async def generate_collaborative_node(
    state: ConversationState, *, generator: TextGenerator, rng: random.Random
) -> dict[str, Any]:
    policy = state["policy"]
    engaged = state.get("engaged", [])
    question = latest_message(state)
    question_text = question.content if question else ""
    analysis = state.get("classification")

    # Only classification sets a goal; prompts still name one when it is absent.
    goal = analysis.collaboration_goal if analysis else None
    prompt_goal = goal or collaboration_goal(question_text)
    consensus_items = list(state.get("consensus", {}).get(goal, [])) if goal else []
    challenge = bool(discussion_messages(state, None)) and rng.random() > CHALLENGE_THRESHOLD
    history = state.get("messages", [])[-history_window(policy, cap=COLLABORATIVE_HISTORY_CAP) :]
    sampling = reply_sampling(policy, collaborative=True)

    drafts: list[Draft] = []
    for i, persona in enumerate(engaged):
        first = i == 0
        challenging = challenge and not first
        prior = "\n".join(f"{d.persona.name}: {d.content}" for d in drafts)
        prompt = collaborative_prompt(
            persona=persona,
            question=question_text,
            history=history,
            context=state.get("context", ""),
            policy=policy,
            goal=prompt_goal,
            consensus_items=consensus_items,
            prior_replies=prior,
            first_speaker=first,
            challenge=challenging,
        )
        try:
            text = await generator.generate(
                prompt, max_tokens=sampling.max_tokens, temperature=sampling.temperature
            )
        except TextGenerationError as e:
            log.warning("collaborative_generation_failed", persona=persona.name, error=str(e))
            drafts.append(
                _fallback_draft(persona, rng, "Fallback due to generation error in collaboration")
            )
            continue

        content = clamp_length(
            text.strip() or fallback_reply(persona, rng), policy.max_response_length
        )
        base = base_confidence(persona, analysis, default=0.85, topical=0.9)
        confidence = collaborative_confidence(
            persona, content, base=base, policy=policy, teammates=engaged, first_speaker=first
        )
        stance = (
            "initiating"
            if first
            else "challenging teammates" if challenging else "building on teammates"
        )
        drafts.append(
            Draft(
                persona=persona,
                content=content,
                confidence=confidence,
                reasoning=(
                    f"Collaborative response as {persona.role} ({stance}), "
                    f"confidence: {round(confidence * 100)}%"
                ),
            )
        )

    messages = [
        Message(
            sender=Sender.persona,
            persona_name=d.persona.name,
            content=d.content,
            metadata={
                META_CONFIDENCE: d.confidence,
                META_REASONING: d.reasoning,
                META_DISCUSSION_ROUND: True,
                META_SPEAKING_ORDER: index + 1,
                META_COLLABORATION_GOAL: goal,
            },
        )
        for index, d in enumerate(drafts)
    ]
    log.info(
        "collaborative_replies_generated",
        goal=goal,
        order=[d.persona.name for d in drafts],
        challenge=challenge,
    )
    return {
        **_turn_updates(state, drafts, messages, Step.generate_collaborative),
        "active_goal": goal,
        "collaboration_fired": True,
        "last_action": "collaborative_discussion_complete",
    }


async def summarize_consensus_node(
    state: ConversationState, *, generator: TextGenerator
) -> dict[str, Any]:
    goal = state.get("active_goal") or FALLBACK_GOAL
    discussion = discussion_messages(state, goal)
    try:
        text = await generator.generate(
            consensus_prompt(goal=goal, discussion=discussion),
            max_tokens=CONSENSUS_SAMPLING.max_tokens,
            temperature=CONSENSUS_SAMPLING.temperature,
        )
    except TextGenerationError as e:
        log.warning("consensus_summary_failed", goal=goal, error=str(e))
        return {"last_action": "collaboration_summary_failed"}

    summary = parse_summary(text) or FALLBACK_CONSENSUS
    message = Message(
        sender=Sender.system,
        content=f"**Team Consensus Summary:** {summary}",
        metadata={
            META_COLLABORATION_SUMMARY: True,
            META_COLLABORATION_GOAL: goal,
            META_PARTICIPANT_COUNT: len(discussion),
        },
    )
    log.info("consensus_summarized", goal=goal, participants=len(discussion))
    return {
        "messages": [message],
        "consensus": {**state.get("consensus", {}), goal: [summary]},
        "consensus_emitted": True,
        "last_action": "collaboration_summary_complete",
    }


def reply_from_message(message: Message) -> PersonaReply:
    name = message.persona_name or "Unknown"
    confidence = message.confidence
    reasoning = message.metadata.get(META_REASONING)
    return PersonaReply(
        persona_name=name,
        content=message.content,
        agent_id=name,
        confidence=confidence if confidence is not None else 0.8,
        reasoning=str(reasoning) if reasoning is not None else None,
    )


# --- Module Notes -----------------------------------------------------------
# Both generators await each persona in order; collaborative mode depends on that
# ordering, and individual mode keeps the same shape.
