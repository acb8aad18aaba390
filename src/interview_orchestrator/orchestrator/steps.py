"""
interview_orchestrator.orchestrator.steps

Closed set of step identifiers for the interview graph.
"""

from __future__ import annotations

import enum


class Step(enum.StrEnum):
    classify_input = "classify_input"
    select_speakers = "select_speakers"
    summarize_memory = "summarize_memory"
    generate_individual = "generate_individual"
    generate_collaborative = "generate_collaborative"
    summarize_consensus = "summarize_consensus"
    validate_responses = "validate_responses"
    format_output = "format_output"


ENTRY_STEP = Step.classify_input
GENERATOR_STEPS = frozenset({Step.generate_individual, Step.generate_collaborative})
