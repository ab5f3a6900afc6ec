# ─────────────────────────────────────────────────────────────────────────────
# Logging Configuration — structlog JSON / console
# ─────────────────────────────────────────────────────────────────────────────


import logging
import sys
from typing import Any

import structlog

# Event-dict keys whose values must never reach a log line.
_REDACTED_KEYS: frozenset[str] = frozenset(
    {"api_key", "authorization", "deepseek_api_key", "x-api-key"}
)

# Libraries that log every request at INFO; one line per call is plenty
# from our own middleware and gateway.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def redact_secrets(_: Any, __: str, event_dict: dict) -> dict:
    """Replace credential-like fields with a fixed marker."""
    for key in list(event_dict):
        if key.lower() in _REDACTED_KEYS:
            event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and route stdlib logging through the same renderer.

    JSON output emits one parseable object per line with timestamp, level,
    logger name and the bound request id. Console output is for local
    development.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
