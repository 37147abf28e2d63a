"""
Logger factory for restbind.

Provides:
- get_logger(): Get a structlog logger instance
- log_with_context(): Bind common context to a logger
- header_names(): Loggable view of a header mapping (names only)
"""

from collections.abc import Mapping
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger


def get_logger(name: str) -> BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        structlog BoundLogger instance

    Example:
        >>> from restbind.utils.logger import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("http_request_completed", method="GET", status_code=200)
    """
    return structlog.get_logger(name)


def log_with_context(logger: BoundLogger, **context) -> BoundLogger:
    """
    Bind context to a logger for all subsequent log calls.

    Example:
        >>> log = log_with_context(get_logger(__name__), method="GET", url="/widgets")
        >>> log.debug("http_request_started")  # includes method and url
    """
    return logger.bind(**context)


def header_names(headers: Optional[Mapping[str, str]]) -> list[str]:
    """Return the sorted header names; values are never logged."""
    if not headers:
        return []
    return sorted(headers.keys())
