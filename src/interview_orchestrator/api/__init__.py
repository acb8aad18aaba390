"""
interview_orchestrator.api

API package for the interview orchestrator service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request parsing, status codes, delegation to services.
