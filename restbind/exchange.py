"""
Per-call request descriptor and state machine.

Every call builds a fresh RequestDescriptor and Exchange; neither outlives
the call and neither is shared between calls.

    IDLE -> SENDING -> AWAITING_RESPONSE -> DECODED
                                         -> TIMED_OUT
                                         -> TRANSPORT_FAILED
                                         -> STATUS_FAILED
                                         -> DECODE_FAILED

Failures may also be reached straight from SENDING (a connection refused
before any response, an unencodable body). Terminal states are final.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import httpx

from restbind.schemas.descriptors import ResponseType

NO_BODY = object()


class CallState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_RESPONSE = "awaiting_response"
    DECODED = "decoded"
    TIMED_OUT = "timed_out"
    TRANSPORT_FAILED = "transport_failed"
    STATUS_FAILED = "status_failed"
    DECODE_FAILED = "decode_failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {
        CallState.DECODED,
        CallState.TIMED_OUT,
        CallState.TRANSPORT_FAILED,
        CallState.STATUS_FAILED,
        CallState.DECODE_FAILED,
    }
)

_FAILURES = _TERMINAL - {CallState.DECODED}

_TRANSITIONS: dict[CallState, frozenset[CallState]] = {
    CallState.IDLE: frozenset({CallState.SENDING, CallState.TIMED_OUT}),
    CallState.SENDING: frozenset({CallState.AWAITING_RESPONSE}) | _FAILURES,
    CallState.AWAITING_RESPONSE: _TERMINAL,
}


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything one call sends: method, URL, headers, body and expected type."""

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = NO_BODY
    response_type: ResponseType = None
    # DELETE without a descriptor reads and drops the response body
    discard_body: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError("url must be a non-empty string")

    @property
    def has_body(self) -> bool:
        return self.body is not NO_BODY and self.body is not None


class Exchange:
    """Forward-only state tracker for one request/response exchange."""

    def __init__(self, request: RequestDescriptor) -> None:
        self.request = request
        self.state = CallState.IDLE
        self.started_at = time.monotonic()
        self.status_code: Optional[int] = None

    def advance(self, new_state: CallState) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise RuntimeError(
                f"Illegal exchange transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self.started_at) * 1000, 2)
