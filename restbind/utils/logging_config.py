"""
Logging configuration for restbind.

Structured logging with structlog:
- JSON rendering or pretty console output, chosen by LoggingSettings
- Redaction of credentials that may end up in event fields

The library never configures logging on import; applications call
``setup_logging()`` once at startup if they want restbind's setup.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from structlog.types import EventDict, Processor

from restbind.config import LoggingSettings

# Sensitive fields to redact from logs
REDACTED_FIELDS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "password",
    "token",
    "api_key",
    "secret",
}

_SENSITIVE_FRAGMENTS = ("password", "token", "secret", "authorization")
_RESERVED_KEYS = {"level", "event", "timestamp", "logger"}


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _RESERVED_KEYS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(
            fragment in lowered for fragment in _SENSITIVE_FRAGMENTS
        ):
            event_dict[key] = "***REDACTED***"
    return event_dict


def build_processors(log_format: str) -> list[Processor]:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        return shared_processors + [structlog.processors.JSONRenderer()]
    return shared_processors + [
        structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), pad_event=15)
    ]


def configure_structlog(settings: LoggingSettings) -> None:
    structlog.configure(
        processors=build_processors(settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(settings: LoggingSettings) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    # httpx/httpcore log every request at INFO/DEBUG; restbind logs its own
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Initialize stdlib logging and structlog for restbind.

    Should be called early in application startup, at most once.
    """
    settings = settings or LoggingSettings()
    configure_stdlib_logging(settings)
    configure_structlog(settings)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_initialized",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
