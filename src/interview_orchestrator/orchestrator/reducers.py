"""
interview_orchestrator.orchestrator.reducers

Reducers define how LangGraph merges partial state updates returned by steps.

Why reducers:
- The transcript and the routing notes are append-only; steps return only the new entries.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def append_only(left: list[T] | None, right: list[T] | None) -> list[T]:
    """
    Append-only reducer.

    Steps return `{"messages": [new_message]}` and this reducer concatenates into a new list,
    leaving the previous list untouched.
    """

    if not left:
        return list(right or [])
    if not right:
        return list(left)
    return [*left, *right]


# --- Module Notes -----------------------------------------------------------
# Keep reducers pure; LangGraph may call them with the initial input as `right`.
