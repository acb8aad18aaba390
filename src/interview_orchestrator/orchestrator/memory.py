"""
interview_orchestrator.orchestrator.memory

Memory summarization step: compress recent history into a short rolling summary.
"""

from __future__ import annotations

from typing import Any

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import TextGenerationError
from interview_orchestrator.orchestrator.parsing import parse_summary
from interview_orchestrator.orchestrator.prompts import MEMORY_SAMPLING, memory_prompt
from interview_orchestrator.orchestrator.state import ConversationState
from interview_orchestrator.text_generation.client import TextGenerator

log = get_logger(__name__)

SUMMARY_WINDOW = 20


def should_summarize(state: ConversationState) -> bool:
    turn_count = state.get("turn_count", 0)
    interval = state["policy"].summary_interval
    return turn_count > 0 and turn_count % interval == 0


async def summarize_memory_node(
    state: ConversationState, *, generator: TextGenerator
) -> dict[str, Any]:
    previous = state.get("summary", "")
    prompt = memory_prompt(messages=state.get("messages", [])[-SUMMARY_WINDOW:], summary=previous)
    try:
        text = await generator.generate(
            prompt,
            max_tokens=MEMORY_SAMPLING.max_tokens,
            temperature=MEMORY_SAMPLING.temperature,
        )
    except TextGenerationError as e:
        # The previous summary stays; a failed summary never blocks the turn.
        log.warning("memory_summary_failed", error=str(e))
        return {"summarized": True, "last_action": "summarization_failed"}

    summary = parse_summary(text)
    if summary is None:
        log.warning("memory_summary_empty")
        return {"summarized": True, "last_action": "summarization_failed"}

    log.info("memory_summarized", turn_count=state.get("turn_count", 0), chars=len(summary))
    return {"summary": summary, "summarized": True, "last_action": "context_summarized"}
