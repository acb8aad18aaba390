"""
interview_orchestrator.orchestrator.graph

Compiles the interview turn into a LangGraph state machine and runs it.

Responsibilities:
- Keep the step, edge and router tables as data keyed by `Step`.
- Refuse to compile unless every step has a function.
- Route each step: halt, then explicit override, then conditional router, then first edge.
- Enforce the iteration ceiling and turn exhaustion into an empty reply set.
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.classification import classify_input_node
from interview_orchestrator.orchestrator.errors import OrchestratorError
from interview_orchestrator.orchestrator.generation import (
    generate_collaborative_node,
    generate_individual_node,
    summarize_consensus_node,
)
from interview_orchestrator.orchestrator.memory import summarize_memory_node
from interview_orchestrator.orchestrator.models import PersonaReply
from interview_orchestrator.orchestrator.nodes import (
    format_output_node,
    route_after_classify,
    route_after_collaboration,
    route_after_select,
)
from interview_orchestrator.orchestrator.selection import select_speakers_node
from interview_orchestrator.orchestrator.state import ConversationState
from interview_orchestrator.orchestrator.steps import ENTRY_STEP, Step
from interview_orchestrator.orchestrator.validation import validate_responses_node
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 15

StepFn = Callable[[ConversationState], Awaitable[dict[str, Any]]]
Router = Callable[[ConversationState], Step]

EDGES: Mapping[Step, tuple[Step, ...]] = {
    Step.summarize_memory: (Step.select_speakers,),
    Step.generate_individual: (Step.validate_responses,),
    Step.summarize_consensus: (Step.validate_responses,),
    Step.validate_responses: (Step.format_output,),
}

ROUTERS: Mapping[Step, Router] = {
    Step.classify_input: route_after_classify,
    Step.select_speakers: route_after_select,
    Step.generate_collaborative: route_after_collaboration,
}


def step_functions(*, generator: TextGenerator, rng: random.Random) -> dict[Step, StepFn]:
    return {
        Step.classify_input: _bind(classify_input_node, generator=generator),
        Step.select_speakers: _bind(select_speakers_node, rng=rng),
        Step.summarize_memory: _bind(summarize_memory_node, generator=generator),
        Step.generate_individual: _bind(generate_individual_node, generator=generator, rng=rng),
        Step.generate_collaborative: _bind(
            generate_collaborative_node, generator=generator, rng=rng
        ),
        Step.summarize_consensus: _bind(summarize_consensus_node, generator=generator),
        Step.validate_responses: validate_responses_node,
        Step.format_output: format_output_node,
    }


def build_graph(
    *,
    generator: TextGenerator,
    rng: random.Random,
    steps: Mapping[Step, StepFn] | None = None,
):
    """
    Returns a compiled LangGraph runnable.

    `steps` replaces the default step table (tests use it to exercise the routing alone).
    """

    table = dict(steps) if steps is not None else step_functions(generator=generator, rng=rng)
    missing = [s.value for s in Step if s not in table]
    if missing:
        raise OrchestratorError(f"graph has no function for steps: {', '.join(missing)}")

    graph = StateGraph(ConversationState)
    path_map: dict[str, str] = {s.value: s.value for s in Step}
    path_map[END] = END

    for step in Step:
        graph.add_node(step.value, _instrument(step, table[step]))
        graph.add_conditional_edges(step.value, _route(step), path_map)

    graph.set_entry_point(ENTRY_STEP.value)
    return graph.compile()


@dataclass(slots=True)
class TurnOutcome:
    replies: list[PersonaReply]
    state: ConversationState
    exhausted: bool = False
    steps: list[str] = field(default_factory=list)


async def execute(
    graph: Any,
    initial_state: ConversationState,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> TurnOutcome:
    """
    Runs one turn and returns the final snapshot.

    Replies are only returned when a step halted the graph; running past the iteration
    ceiling yields an empty reply set instead of an exception.
    """

    final: ConversationState = initial_state
    visited: list[str] = []
    try:
        async for snapshot in graph.astream(
            initial_state,
            config={"recursion_limit": max_iterations},
            stream_mode="values",
        ):
            final = snapshot
            if snapshot.get("last_action"):
                visited.append(snapshot["last_action"])
    except GraphRecursionError:
        log.warning(
            "turn_iteration_ceiling_reached",
            max_iterations=max_iterations,
            iterations=final.get("iterations", 0),
            validation_failures=final.get("validation_failures", 0),
        )
        return TurnOutcome(replies=[], state=final, exhausted=True, steps=visited)

    replies = list(final.get("replies", [])) if final.get("halted") else []
    return TurnOutcome(replies=replies, state=final, steps=visited)


def _route(step: Step) -> Callable[[ConversationState], str]:
    router = ROUTERS.get(step)
    successors = EDGES.get(step, ())

    def _next(state: ConversationState) -> str:
        if state.get("halted"):
            return END
        override = state.get("next_step")
        if override:
            return str(override)
        if router is not None:
            return router(state).value
        if successors:
            return successors[0].value
        return END

    return _next


def _instrument(step: Step, fn: StepFn) -> StepFn:
    async def _wrapped(state: ConversationState) -> dict[str, Any]:
        with structlog.contextvars.bound_contextvars(step=step.value):
            update = dict(await fn(state))
        # An override only applies to the step that set it.
        update.setdefault("next_step", None)
        update["iterations"] = state.get("iterations", 0) + 1
        return update

    return _wrapped


def _bind(fn: Callable[..., Awaitable[dict[str, Any]]], **deps: Any) -> StepFn:
    async def _wrapped(state: ConversationState) -> dict[str, Any]:
        return await fn(state, **deps)

    return _wrapped


# --- Module Notes -----------------------------------------------------------
# Node names are the plain `Step` values; every node routes through `_route`, so the
# edge and router tables above are the whole topology.
