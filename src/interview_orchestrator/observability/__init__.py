"""
interview_orchestrator.observability

Observability package.

Responsibilities:
- Structured logging configuration and request-scoped context middleware.
"""

# Package marker.
