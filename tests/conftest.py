"""
tests.conftest

Shared fixtures: persona rosters, a scripted text generator and a fixed random source.
"""

from __future__ import annotations

import random
import re
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from interview_orchestrator.orchestrator.errors import TextGenerationError
from interview_orchestrator.orchestrator.models import InstructorPolicy, Message, Persona, Sender
from interview_orchestrator.orchestrator.state import ConversationState

_PERSONA_RE = re.compile(r"^You are ([^,]+),")


def prompt_kind(prompt: str) -> str:
    if prompt.startswith("Analyze this student interview question"):
        return "classify"
    if prompt.startswith("Summarize this interview conversation"):
        return "memory"
    if prompt.startswith("Based on this team discussion"):
        return "consensus"
    return "reply"


def prompt_persona(prompt: str) -> str | None:
    m = _PERSONA_RE.match(prompt)
    return m.group(1) if m else None


@dataclass
class Call:
    kind: str
    prompt: str
    max_tokens: int
    temperature: float

    @property
    def persona(self) -> str | None:
        return prompt_persona(self.prompt)


def default_reply(persona: str) -> str:
    return f"Speaking as {persona}, I would start by mapping how the current rollout works."


@dataclass
class ScriptedGenerator:
    """
    Answers each prompt kind from a script and records every call.

    `reply` may be a fixed string or a function of the persona name; kinds listed in
    `fail` raise `TextGenerationError`.
    """

    classification: str = "TOPIC: general_inquiry | GENERAL: no | REASONING: scripted"
    summary: str = "The student is exploring the rollout with the team."
    consensus: str = "The team agreed to pilot the change with one crew first."
    reply: str | Callable[[str], str] = default_reply
    fail: frozenset[str] = frozenset()
    calls: list[Call] = field(default_factory=list)

    async def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        kind = prompt_kind(prompt)
        self.calls.append(Call(kind, prompt, max_tokens, temperature))
        if kind in self.fail:
            raise TextGenerationError(f"scripted {kind} failure")
        if kind == "classify":
            return self.classification
        if kind == "memory":
            return self.summary
        if kind == "consensus":
            return self.consensus
        if isinstance(self.reply, str):
            return self.reply
        return self.reply(prompt_persona(prompt) or "Unknown")

    def of_kind(self, kind: str) -> list[Call]:
        return [c for c in self.calls if c.kind == kind]


class FixedRandom(random.Random):
    """`random()` always returns the given value; `choice` stays seeded."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


MARIA = Persona(
    name="Maria Lopez",
    initials="ML",
    role="Safety Manager",
    goal="Reduce workplace incidents on the plant floor",
    concerns="safety compliance and incident reporting",
    personality="cautious",
)
JAMES = Persona(
    name="James Chen",
    initials="JC",
    role="Operations Director",
    goal="Keep production running on schedule",
    concerns="budget, downtime and shift coverage",
    personality="practical",
)
PRIYA = Persona(
    name="Priya Patel",
    initials="PP",
    role="IT Lead",
    goal="Modernize the plant's software systems",
    concerns="integration effort and data quality",
    personality="analytical",
)


@pytest.fixture
def roster() -> list[Persona]:
    return [MARIA, JAMES, PRIYA]


def student(content: str) -> Message:
    return Message(sender=Sender.student, content=content)


def persona_says(persona: Persona | str, content: str, **metadata: object) -> Message:
    name = persona if isinstance(persona, str) else persona.name
    return Message(sender=Sender.persona, persona_name=name, content=content, metadata=metadata)


def make_state(
    *,
    roster: list[Persona],
    messages: list[Message],
    policy: InstructorPolicy | None = None,
    **overrides: object,
) -> ConversationState:
    state: ConversationState = {
        "session_id": "session-test",
        "roster": roster,
        "engaged": [],
        "messages": messages,
        "last_speaker": None,
        "context": "",
        "summary": "",
        "turn_history": {},
        "recent_speakers": [],
        "turn_count": 0,
        "policy": policy or InstructorPolicy(),
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
    state.update(overrides)  # type: ignore[typeddict-item]
    return state
