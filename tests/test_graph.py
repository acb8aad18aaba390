from __future__ import annotations

import random

import pytest
from conftest import JAMES, MARIA, PRIYA, ScriptedGenerator, make_state, persona_says, student

from interview_orchestrator.orchestrator.errors import OrchestratorError
from interview_orchestrator.orchestrator.graph import build_graph, execute, step_functions
from interview_orchestrator.orchestrator.models import ClassificationResult, Intent, Sender
from interview_orchestrator.orchestrator.nodes import format_output_node
from interview_orchestrator.orchestrator.steps import Step


def _graph(gen: ScriptedGenerator, seed: int = 7):
    return build_graph(generator=gen, rng=random.Random(seed))


def test_graph_requires_a_function_for_every_step() -> None:
    gen = ScriptedGenerator()
    table = step_functions(generator=gen, rng=random.Random(0))
    del table[Step.summarize_consensus]
    with pytest.raises(OrchestratorError, match="summarize_consensus"):
        build_graph(generator=gen, rng=random.Random(0), steps=table)


@pytest.mark.asyncio
async def test_targeted_turn_end_to_end(roster) -> None:
    gen = ScriptedGenerator(classification="TOPIC: safety | GENERAL: no")
    state = make_state(
        roster=roster, messages=[student("What safety concerns do you have, Maria?")]
    )
    outcome = await execute(_graph(gen), state)

    assert not outcome.exhausted
    assert [r.persona_name for r in outcome.replies] == [MARIA.name]
    assert outcome.replies[0].agent_id == MARIA.name
    assert outcome.state["last_speaker"] == MARIA.name
    assert outcome.state["halted"] is True
    assert [m.sender for m in outcome.state["messages"]] == [Sender.student, Sender.persona]


@pytest.mark.asyncio
async def test_low_confidence_classification_retries_until_the_ceiling(roster) -> None:
    gen = ScriptedGenerator(classification="TOPIC: process | CONFIDENCE: 0.1")
    state = make_state(
        roster=roster, messages=[student("What would you change about onboarding?")]
    )
    outcome = await execute(_graph(gen), state, max_iterations=15)

    assert outcome.exhausted
    assert outcome.replies == []
    assert len(gen.of_kind("classify")) >= 3
    assert gen.of_kind("reply") == []


@pytest.mark.asyncio
async def test_failing_validation_regenerates_then_gives_up_softly(roster) -> None:
    gen = ScriptedGenerator(reply="Sure.")
    state = make_state(roster=roster, messages=[student("Maria, what do you think?")])
    outcome = await execute(_graph(gen), state, max_iterations=15)

    assert outcome.exhausted
    assert outcome.replies == []
    assert len(gen.of_kind("reply")) >= 2
    assert gen.of_kind("classify") and len(gen.of_kind("classify")) == 1


@pytest.mark.asyncio
async def test_non_student_message_stops_without_replies(roster) -> None:
    gen = ScriptedGenerator()
    state = make_state(roster=roster, messages=[persona_says(JAMES, "Morning, all of you.")])
    outcome = await execute(_graph(gen), state)
    assert outcome.replies == []
    assert not outcome.exhausted
    assert gen.calls == []


@pytest.mark.asyncio
async def test_team_discussion_emits_one_consensus_summary(roster) -> None:
    gen = ScriptedGenerator(classification="TOPIC: process | GENERAL: yes")
    state = make_state(
        roster=roster,
        messages=[student("Let's discuss as a team which tech stack we should adopt")],
    )
    outcome = await execute(_graph(gen), state)

    summaries = [m for m in outcome.state["messages"] if m.sender == Sender.system]
    assert len(summaries) == 1
    assert summaries[0].metadata["collaborationGoal"] == "tech_stack"
    assert len(gen.of_kind("consensus")) == 1
    assert {r.persona_name for r in outcome.replies} == {MARIA.name, JAMES.name, PRIYA.name}
    assert outcome.state["consensus"] == {"tech_stack": [gen.consensus]}


@pytest.mark.asyncio
async def test_two_person_discussion_has_no_consensus_yet() -> None:
    gen = ScriptedGenerator(classification="TOPIC: process | GENERAL: yes")
    state = make_state(
        roster=[MARIA, JAMES],
        messages=[student("Let's discuss as a team how we roll out the new process")],
    )
    outcome = await execute(_graph(gen), state)

    assert [r.persona_name for r in outcome.replies] == [MARIA.name, JAMES.name]
    assert gen.of_kind("consensus") == []
    first_reply = outcome.state["messages"][1].content
    assert first_reply in gen.of_kind("reply")[1].prompt


@pytest.mark.asyncio
async def test_rejected_discussion_is_regenerated_without_a_second_consensus(roster) -> None:
    answers = iter(["Sure."] * 3)
    gen = ScriptedGenerator(
        classification="TOPIC: process | GENERAL: yes",
        reply=lambda name: next(answers, f"{name} thinks we should pilot it on one line first."),
    )
    state = make_state(
        roster=roster,
        messages=[student("Let's discuss as a team which tech stack we should adopt")],
    )
    outcome = await execute(_graph(gen), state)

    assert not outcome.exhausted
    assert outcome.state["validation_failures"] == 1
    assert len(gen.of_kind("consensus")) == 1
    summaries = [m for m in outcome.state["messages"] if m.sender == Sender.system]
    assert len(summaries) == 1
    assert len(outcome.state["rejected"]) == 3
    assert len(outcome.replies) == 3
    assert all(r.content != "Sure." for r in outcome.replies)


@pytest.mark.asyncio
async def test_targeted_discussion_never_reaches_consensus(roster) -> None:
    earlier = [
        persona_says(
            p, f"{p.name} on the plan so far.", discussionRound=True, collaborationGoal="plan"
        )
        for p in (PRIYA, JAMES)
    ]
    gen = ScriptedGenerator(classification="TOPIC: process | GENERAL: no")
    state = make_state(
        roster=roster,
        messages=[*earlier, student("Maria and James, discuss the plan together")],
    )
    outcome = await execute(_graph(gen), state)

    assert outcome.state["classification"].collaboration_goal is None
    assert outcome.state["collaboration_fired"] is True
    assert outcome.state["active_goal"] is None
    assert gen.of_kind("consensus") == []
    assert [r.persona_name for r in outcome.replies] == [MARIA.name, JAMES.name]


@pytest.mark.asyncio
async def test_output_holds_only_the_latest_batch(roster) -> None:
    fresh = persona_says(MARIA, "We review every near miss on Mondays.", confidence=0.8)
    state = make_state(
        roster=roster,
        messages=[persona_says(JAMES, "Budget is tight.", confidence=0.9), student("Go on"), fresh],
        engaged=[MARIA, JAMES],
        batch=[fresh.id],
    )
    update = await format_output_node(state)
    assert [r.persona_name for r in update["replies"]] == [MARIA.name]
    assert update["halted"] is True

@pytest.mark.asyncio
async def test_override_wins_over_edges() -> None:
    visits: list[str] = []
    analysis = ClassificationResult(intent=Intent.general, confidence=0.9)

    def record(step: Step, update: dict):
        async def _fn(state) -> dict:
            visits.append(step.value)
            return dict(update)

        return _fn

    table = {step: record(step, {}) for step in Step}
    table[Step.classify_input] = record(Step.classify_input, {"classification": analysis})
    table[Step.select_speakers] = record(Step.select_speakers, {"engaged": [MARIA]})
    table[Step.generate_individual] = record(
        Step.generate_individual, {"next_step": Step.format_output.value}
    )
    table[Step.format_output] = record(Step.format_output, {"halted": True, "replies": []})

    graph = build_graph(generator=ScriptedGenerator(), rng=random.Random(0), steps=table)
    outcome = await execute(graph, make_state(roster=[MARIA], messages=[student("Hi there")]))

    assert visits == ["classify_input", "select_speakers", "generate_individual", "format_output"]
    assert outcome.state["iterations"] == 4
    assert outcome.state["next_step"] is None
