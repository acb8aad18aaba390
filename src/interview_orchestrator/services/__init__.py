"""
interview_orchestrator.services

Service-layer package.

Responsibilities:
- Own input validation, transaction boundaries and persistence decisions.
- Run one interview turn through the orchestrator and shape the response envelope.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services stay plain Python so tests can drive them with scripted generators.
