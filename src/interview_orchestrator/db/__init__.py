"""
interview_orchestrator.db

Persistence package (SQLAlchemy async) for interview sessions.

Responsibilities:
- Provide the ORM model, engine/session setup, and the session repository.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The orchestrator never imports this package; only the service and API layers do.
