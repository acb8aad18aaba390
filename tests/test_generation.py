from __future__ import annotations

import random

import pytest
from conftest import (
    JAMES,
    MARIA,
    PRIYA,
    FixedRandom,
    ScriptedGenerator,
    make_state,
    persona_says,
    student,
)

from interview_orchestrator.orchestrator.generation import (
    FALLBACK_CONFIDENCE,
    clamp_length,
    collaborative_confidence,
    generate_collaborative_node,
    generate_individual_node,
    individual_confidence,
    summarize_consensus_node,
)
from interview_orchestrator.orchestrator.memory import summarize_memory_node
from interview_orchestrator.orchestrator.models import (
    ClassificationResult,
    InstructorPolicy,
    Intent,
    Sender,
)
from interview_orchestrator.orchestrator.state import RECENCY_WINDOW

PLAIN = InstructorPolicy()
EMPHASIS = InstructorPolicy(personality_emphasis=True)
LONG_NEUTRAL = "We track every near miss in a shared log each week."


def test_individual_confidence_adjustments() -> None:
    assert individual_confidence(MARIA, LONG_NEUTRAL, base=0.7, policy=PLAIN) == 0.7
    assert individual_confidence(MARIA, "Too short.", base=0.7, policy=PLAIN) == 0.42
    assert individual_confidence(
        MARIA, "As an AI I have no view on that topic.", base=0.7, policy=PLAIN
    ) == 0.14
    careful = "I'm careful about changing the lockout steps too quickly."
    assert individual_confidence(MARIA, careful, base=0.7, policy=PLAIN) == 0.77
    assert individual_confidence(MARIA, careful, base=0.7, policy=EMPHASIS) == 0.84
    assert individual_confidence(MARIA, LONG_NEUTRAL, base=0.7, policy=EMPHASIS) < 0.7
    assert individual_confidence(MARIA, careful, base=0.95, policy=EMPHASIS) == 0.99


def test_collaborative_confidence_bonuses_apply_after_the_first_speaker() -> None:
    reply = "I agree with Maria Lopez, but what do you think about the budget impact?"
    first = collaborative_confidence(
        JAMES, reply, base=0.85, policy=PLAIN, teammates=[MARIA, JAMES], first_speaker=True
    )
    later = collaborative_confidence(
        JAMES, reply, base=0.85, policy=PLAIN, teammates=[MARIA, JAMES], first_speaker=False
    )
    assert first == 0.85
    assert later == 0.99


def test_clamp_length() -> None:
    assert clamp_length("abcdefghij", 8) == "abcde..."
    assert clamp_length("abc", 8) == "abc"
    assert clamp_length("abcdefghij", None) == "abcdefghij"


@pytest.mark.asyncio
async def test_individual_replies_skip_last_speaker_and_update_bookkeeping(roster) -> None:
    gen = ScriptedGenerator()
    state = make_state(
        roster=roster,
        messages=[student("What does a good week look like?")],
        engaged=[MARIA, JAMES],
        last_speaker=JAMES.name,
        recent_speakers=["x1", "x2", "x3", "x4", "x5", "x6", "x7", "x8"],
        turn_count=4,
        classification=ClassificationResult(intent=Intent.general, confidence=0.7),
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))

    assert [m.persona_name for m in update["messages"]] == [MARIA.name]
    assert update["last_speaker"] == MARIA.name
    assert update["turn_count"] == 5
    assert len(update["recent_speakers"]) == RECENCY_WINDOW
    assert update["recent_speakers"][-1] == MARIA.name
    assert update["last_generator"] == "generate_individual"
    assert update["batch"] == [m.id for m in update["messages"]]
    message = update["messages"][0]
    assert message.sender == Sender.persona
    assert 0.0 <= message.metadata["confidence"] <= 1.0
    assert message.metadata["reasoning"]


@pytest.mark.asyncio
async def test_multiple_replies_leave_last_speaker_unset(roster) -> None:
    gen = ScriptedGenerator()
    state = make_state(
        roster=roster, messages=[student("Thoughts on the new shift plan?")], engaged=[MARIA, PRIYA]
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    assert len(update["messages"]) == 2
    assert update["last_speaker"] is None
    assert [c.persona for c in gen.of_kind("reply")] == [MARIA.name, PRIYA.name]


@pytest.mark.asyncio
async def test_alternate_persona_when_only_last_speaker_was_engaged(roster) -> None:
    gen = ScriptedGenerator()
    state = make_state(
        roster=roster,
        messages=[student("And you again?")],
        engaged=[MARIA],
        last_speaker=MARIA.name,
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    assert [m.persona_name for m in update["messages"]] == [JAMES.name]


@pytest.mark.asyncio
async def test_single_persona_roster_may_answer_again() -> None:
    gen = ScriptedGenerator()
    state = make_state(
        roster=[MARIA], messages=[student("Go on.")], engaged=[MARIA], last_speaker=None
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    assert [m.persona_name for m in update["messages"]] == [MARIA.name]


@pytest.mark.asyncio
async def test_generation_failure_uses_fallback_line(roster) -> None:
    gen = ScriptedGenerator(fail=frozenset({"reply"}))
    state = make_state(roster=roster, messages=[student("What worries you?")], engaged=[PRIYA])
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    message = update["messages"][0]
    assert message.metadata["confidence"] == FALLBACK_CONFIDENCE
    assert PRIYA.role in message.content or PRIYA.goal[:20] in message.content


@pytest.mark.asyncio
async def test_max_length_truncates_and_shrinks_token_budget(roster) -> None:
    gen = ScriptedGenerator(reply="x" * 200)
    policy = InstructorPolicy(max_response_length=40)
    state = make_state(
        roster=roster, messages=[student("Keep it brief.")], engaged=[MARIA], policy=policy
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    assert update["messages"][0].content == "x" * 37 + "..."
    assert gen.of_kind("reply")[0].max_tokens == 10
    assert "under 40 characters" in gen.of_kind("reply")[0].prompt


@pytest.mark.asyncio
async def test_targeted_persona_gets_higher_confidence(roster) -> None:
    gen = ScriptedGenerator(reply="We review every near miss within a day of it happening.")
    analysis = ClassificationResult(
        intent=Intent.targeted, target_personas=(MARIA.name,), confidence=0.95
    )
    state = make_state(
        roster=roster,
        messages=[student("Maria, how do you review incidents?")],
        engaged=[MARIA],
        classification=analysis,
    )
    update = await generate_individual_node(state, generator=gen, rng=random.Random(0))
    assert update["messages"][0].metadata["confidence"] == 0.95


@pytest.mark.asyncio
async def test_second_speaker_sees_first_reply_verbatim() -> None:
    first_text = "Speaking as Maria Lopez, guard rails on line three come before anything else."
    gen = ScriptedGenerator(
        reply=lambda name: first_text if name == MARIA.name else f"{name} builds on that point."
    )
    analysis = ClassificationResult(
        intent=Intent.general,
        confidence=0.85,
        collaboration_goal="approach",
        collaboration_requested=True,
    )
    state = make_state(
        roster=[MARIA, JAMES],
        messages=[student("Let's discuss as a team how we roll out the new approach")],
        engaged=[MARIA, JAMES],
        classification=analysis,
    )
    update = await generate_collaborative_node(state, generator=gen, rng=FixedRandom(0.9))

    prompts = gen.of_kind("reply")
    assert [c.persona for c in prompts] == [MARIA.name, JAMES.name]
    assert first_text not in prompts[0].prompt
    assert f"{MARIA.name}: {first_text}" in prompts[1].prompt
    assert update["active_goal"] == "approach"
    assert update["collaboration_fired"] is True
    orders = [m.metadata["speakingOrder"] for m in update["messages"]]
    assert orders == [1, 2]
    assert all(m.metadata["discussionRound"] is True for m in update["messages"])
    assert all(m.metadata["collaborationGoal"] == "approach" for m in update["messages"])


@pytest.mark.asyncio
async def test_targeted_discussion_carries_no_goal() -> None:
    analysis = ClassificationResult(
        intent=Intent.targeted,
        target_personas=(MARIA.name, JAMES.name),
        confidence=0.95,
        collaboration_requested=True,
    )
    state = make_state(
        roster=[MARIA, JAMES, PRIYA],
        messages=[student("Maria and James, discuss the plan together")],
        engaged=[MARIA, JAMES],
        classification=analysis,
    )
    gen = ScriptedGenerator()
    update = await generate_collaborative_node(state, generator=gen, rng=FixedRandom(0.1))

    assert update["active_goal"] is None
    assert all(m.metadata["collaborationGoal"] is None for m in update["messages"])
    assert "achieve: plan" in gen.of_kind("reply")[0].prompt


@pytest.mark.asyncio
async def test_rejected_replies_do_not_count_as_discussion() -> None:
    analysis = ClassificationResult(
        intent=Intent.general,
        confidence=0.85,
        collaboration_goal="plan",
        collaboration_requested=True,
    )
    turned_down = persona_says(PRIYA, "Sure.", discussionRound=True, collaborationGoal="plan")
    state = make_state(
        roster=[MARIA, JAMES, PRIYA],
        messages=[student("Decide on a plan together"), turned_down],
        engaged=[MARIA, JAMES],
        classification=analysis,
        rejected=[turned_down.id],
    )
    gen = ScriptedGenerator()
    await generate_collaborative_node(state, generator=gen, rng=FixedRandom(0.99))
    assert not any("respectfully challenge" in c.prompt for c in gen.of_kind("reply"))

@pytest.mark.asyncio
async def test_challenge_needs_earlier_discussion_and_skips_first_speaker() -> None:
    analysis = ClassificationResult(
        intent=Intent.general,
        confidence=0.85,
        collaboration_goal="plan",
        collaboration_requested=True,
    )
    fresh = make_state(
        roster=[MARIA, JAMES],
        messages=[student("Decide on a plan together")],
        engaged=[MARIA, JAMES],
        classification=analysis,
    )
    gen = ScriptedGenerator()
    await generate_collaborative_node(fresh, generator=gen, rng=FixedRandom(0.99))
    assert not any("respectfully challenge" in c.prompt for c in gen.of_kind("reply"))

    earlier = persona_says(
        PRIYA, "We should phase it by department.", discussionRound=True, collaborationGoal="plan"
    )
    continued = make_state(
        roster=[MARIA, JAMES],
        messages=[earlier, student("Decide on a plan together")],
        engaged=[MARIA, JAMES],
        classification=analysis,
    )
    gen = ScriptedGenerator()
    await generate_collaborative_node(continued, generator=gen, rng=FixedRandom(0.99))
    first, second = gen.of_kind("reply")
    assert "respectfully challenge" not in first.prompt
    assert "respectfully challenge" in second.prompt


@pytest.mark.asyncio
async def test_consensus_summary_is_system_authored() -> None:
    discussion = [
        persona_says(
            p, f"{p.name} view on the plan.", discussionRound=True, collaborationGoal="plan"
        )
        for p in (MARIA, JAMES, PRIYA)
    ]
    state = make_state(
        roster=[MARIA, JAMES, PRIYA],
        messages=[student("Agree on a plan"), *discussion],
        active_goal="plan",
    )
    update = await summarize_consensus_node(state, generator=ScriptedGenerator())
    (message,) = update["messages"]
    assert message.sender == Sender.system
    assert message.persona_name is None
    assert message.content.startswith("**Team Consensus Summary:**")
    assert message.metadata["isCollaborationSummary"] is True
    assert message.metadata["participantCount"] == 3
    assert update["consensus"] == {"plan": [ScriptedGenerator().consensus]}
    assert update["consensus_emitted"] is True


@pytest.mark.asyncio
async def test_consensus_failure_changes_nothing() -> None:
    state = make_state(roster=[MARIA], messages=[student("Agree on a plan")], active_goal="plan")
    update = await summarize_consensus_node(
        state, generator=ScriptedGenerator(fail=frozenset({"consensus"}))
    )
    assert "messages" not in update
    assert "consensus" not in update


@pytest.mark.asyncio
async def test_memory_summary_keeps_previous_on_failure(roster) -> None:
    state = make_state(roster=roster, messages=[student("Next?")], summary="safety, process")
    ok = await summarize_memory_node(state, generator=ScriptedGenerator(summary="New summary."))
    assert ok["summary"] == "New summary."

    failed = await summarize_memory_node(
        state, generator=ScriptedGenerator(fail=frozenset({"memory"}))
    )
    assert "summary" not in failed
    blank = await summarize_memory_node(state, generator=ScriptedGenerator(summary="   "))
    assert "summary" not in blank
