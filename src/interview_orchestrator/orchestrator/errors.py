"""
interview_orchestrator.orchestrator.errors

Domain-specific exceptions used around the orchestration graph.

Responsibilities:
- Name the failure classes that callers handle explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class OrchestratorError(Exception):
    """Base class for errors raised by this package."""


@dataclass(frozen=True, slots=True)
class InvalidTurnInput(OrchestratorError):
    """
    Raised before the graph runs when the inbound turn cannot be processed
    (no message, empty roster, duplicate persona names).
    """

    reason: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class TextGenerationError(OrchestratorError):
    """
    Raised by text-generation clients on transport failure, non-2xx status, or empty output.
    Steps catch it and degrade to canned or previous values.
    """

    reason: str
    status_code: int | None = None

    def __str__(self) -> str:
        return self.reason


# --- Module Notes -----------------------------------------------------------
# Nothing inside the graph lets these escape: generation failures degrade locally,
# and the service layer turns InvalidTurnInput into a 400 response.
