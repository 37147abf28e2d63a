"""Codec protocol: the client depends on this, not on the concrete JsonCodec."""

from typing import Any, Protocol, runtime_checkable

from restbind.schemas.descriptors import ResponseType


@runtime_checkable
class Codec(Protocol):
    def encode(self, body: Any) -> bytes: ...

    def decode(self, content: bytes, response_type: ResponseType = None) -> Any: ...
