"""
Structured logging for the API, the scheduler and the admin scripts.

Every record goes through structlog: JSON lines in production, the console
renderer elsewhere. Credentials are masked before rendering, whatever logger
emitted them.
"""

import logging
import sys
from typing import Any

import structlog
from asgi_correlation_id import correlation_id

from labsite.config import get_settings

REDACTED = "***"
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "new_password",
        "old_password",
        "temporary_password",
        "password_hash",
        "token",
        "reset_token",
        "authorization",
    }
)

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "apscheduler.executors.default")


def add_request_id(logger, method_name, event_dict):
    request_id = correlation_id.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def redact_credentials(logger, method_name, event_dict):
    for key in list(event_dict):
        if key.lower() in SENSITIVE_KEYS and event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _renderer(json_output: bool):
    return structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()


def configure_logging() -> None:
    settings = get_settings()
    json_output = settings.ENVIRONMENT == "production"
    level = settings.LOG_LEVEL.upper()

    shared_processors: list[Any] = [
        add_request_id,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    tail: list[Any] = [structlog.processors.format_exc_info] if json_output else []
    structlog.configure(
        processors=shared_processors + tail + [_renderer(json_output)],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (uvicorn, sqlalchemy, apscheduler, the client package) share the pipeline
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    if level != "DEBUG":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
