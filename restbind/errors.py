"""
Client error hierarchy.

RestClientError is the base for all typed errors raised by restbind. Every
failure of a call surfaces to the caller as one of these; nothing is retried
or substituted with a default value.

Lower-level exceptions (httpx, pydantic, json) are always chained via
``raise ... from exc`` so the original cause stays inspectable.
"""

from __future__ import annotations

from typing import Any, Optional


class RestClientError(Exception):
    """Base client error. All typed errors inherit from this."""

    error_code: str = "client_error"

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ConfigurationError(RestClientError):
    """Invalid serialization-policy or client options at construction time."""

    error_code = "configuration_error"


class TransportError(RestClientError):
    """Connection, TLS, DNS or protocol failure below the HTTP layer."""

    error_code = "transport_error"


class RequestTimeoutError(RestClientError, TimeoutError):
    """The response did not arrive within the client's configured timeout."""

    error_code = "request_timeout"

    def __init__(
        self,
        message: str,
        *,
        timeout_ms: Optional[int] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.timeout_ms = timeout_ms

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.timeout_ms is not None:
            payload["timeout_ms"] = self.timeout_ms
        return payload


class DecodeError(RestClientError):
    """Response body does not conform to the expected response type."""

    error_code = "decode_error"


class EncodeError(RestClientError):
    """Request body could not be serialized with the client's policy."""

    error_code = "encode_error"


class ResponseStatusError(RestClientError):
    """Server answered with a non-2xx status code."""

    error_code = "response_status_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["status_code"] = self.status_code
        return payload
