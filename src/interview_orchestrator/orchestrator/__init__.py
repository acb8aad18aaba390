"""
interview_orchestrator.orchestrator

Orchestration package (LangGraph state machine for one interview turn).

Responsibilities:
- Typed state schema, steps, routing, and graph compilation.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Public surface area should remain small and stable; call sites should use the service layer.
