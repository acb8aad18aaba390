"""
interview_orchestrator.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., the text-generation API key).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INTERVIEW_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "interview-orchestrator"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Session transcripts
    database_url: str = "sqlite+aiosqlite:///./interview.db"

    # Text generation (Cohere chat API)
    cohere_api_key: str = Field(default="", repr=False)
    cohere_base_url: str = "https://api.cohere.com"
    cohere_model: str = "command-r-plus"
    generation_timeout_seconds: float = 30.0

    # Orchestrator
    max_iterations: int = Field(default=15, ge=1)
    default_summary_interval: int = Field(default=20, ge=1)
    random_seed: int | None = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Instructor policy is per-request data, not settings; only its defaults live here.
