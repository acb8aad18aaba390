"""
interview_orchestrator.text_generation

Text-generation collaborator boundary.

Responsibilities:
- Define the `TextGenerator` protocol the orchestrator depends on.
- Provide the HTTP client used in deployments.
"""

# Package marker.
