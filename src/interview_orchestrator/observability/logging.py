"""
interview_orchestrator.observability.logging

Structured logging for the interview service.

Responsibilities:
- Configure `structlog` to emit one JSON object per event (console rendering in dev).
- Stamp every event with the service name and any bound turn/step context.
- Keep per-call HTTP client chatter out of the turn logs.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Each generator call would otherwise log one INFO line per request.
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _stamp(service=service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _stamp(**fields: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# `session_id` is bound per turn (services.interview_service) and `step` per node
# (orchestrator.graph), so every step event in one turn can be correlated.
