"""
interview_orchestrator.text_generation.client

HTTP client boundary used by the orchestrator to call the text-generation service.

Responsibilities:
- Define the single `generate(prompt, max_tokens, temperature)` operation.
- Call the Cohere chat endpoint with bearer auth via a shared `httpx.AsyncClient`.
- Normalize every failure (transport, status, empty text) to `TextGenerationError`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from interview_orchestrator.observability.logging import get_logger
from interview_orchestrator.orchestrator.errors import TextGenerationError
from interview_orchestrator.settings import Settings

log = get_logger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    async def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> str: ...


class CohereTextGenerator:
    """
    The orchestrator only sees `generate`; model choice, credentials and transport
    are configured here from settings.
    """

    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def _authz(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._settings.cohere_api_key}"}

    async def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        try:
            r = await self._http.post(
                "/v1/chat",
                headers=self._authz(),
                json={
                    "model": self._settings.cohere_model,
                    "message": prompt,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning("text_generation_http_error", status_code=e.response.status_code)
            raise TextGenerationError(
                f"text generation returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            log.warning("text_generation_transport_error", error=str(e))
            raise TextGenerationError(f"text generation transport error: {e}") from e

        try:
            payload = r.json()
        except ValueError as e:
            raise TextGenerationError("text generation returned invalid JSON") from e
        text = str(payload.get("text") or "").strip() if isinstance(payload, dict) else ""
        if not text:
            raise TextGenerationError("text generation returned empty text")
        return text


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.cohere_base_url,
        timeout=settings.generation_timeout_seconds,
    )


# --- Module Notes -----------------------------------------------------------
# The HTTP client is owned by the API lifespan (one pool per process); tests inject
# scripted generators instead of patching httpx.
