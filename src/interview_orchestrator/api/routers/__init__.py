"""
interview_orchestrator.api.routers

HTTP routers (health, interview turns, session storage).
"""

# Package marker.
