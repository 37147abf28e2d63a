"""
restbind: a typed JSON-over-HTTP client with a blocking call surface.

One serialization policy (field naming, unknown-field handling, date format)
is configured per client and shared read-only by every call; requests run on
httpx's async transport behind synchronous verb methods.
"""

from restbind.client import RestClient, build_codec
from restbind.codec import (
    DEFAULT_DATE_FORMAT,
    Codec,
    JsonCodec,
    NamingConvention,
    SerializationPolicy,
)
from restbind.config import ClientSettings, CodecSettings, LoggingSettings, TransportSettings
from restbind.errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    RequestTimeoutError,
    ResponseStatusError,
    RestClientError,
    TransportError,
)
from restbind.exchange import CallState
from restbind.infrastructure.http_client import AsyncRestClient
from restbind.schemas.descriptors import ListOf, TypeRef
from restbind.utils.logging_config import setup_logging

__all__ = [
    "DEFAULT_DATE_FORMAT",
    "AsyncRestClient",
    "CallState",
    "ClientSettings",
    "Codec",
    "CodecSettings",
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "JsonCodec",
    "ListOf",
    "LoggingSettings",
    "NamingConvention",
    "RequestTimeoutError",
    "ResponseStatusError",
    "RestClient",
    "RestClientError",
    "SerializationPolicy",
    "TransportError",
    "TransportSettings",
    "TypeRef",
    "build_codec",
    "setup_logging",
]
