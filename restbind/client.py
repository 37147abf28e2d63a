"""
Synchronous typed REST client.

RestClient exposes blocking CRUD verbs. Each verb hands one AsyncRestClient
coroutine to the client's background event loop and waits on the resulting
future for at most the configured timeout. The caller never sees the future.

Construction modes:

    RestClient()                                    # default policy
    RestClient(naming="camelCase", timeout_ms=2000) # declarative options
    RestClient(policy=SerializationPolicy(...))     # prebuilt policy
    RestClient(codec=my_codec, timeout_ms=2000)     # any Codec implementation
    RestClient.from_settings(ClientSettings())      # RESTBIND_* environment
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Coroutine, Mapping
from typing import Any, Optional, Union

import httpx

from restbind.codec.json_codec import JsonCodec
from restbind.codec.naming import NamingConvention
from restbind.codec.policy import SerializationPolicy
from restbind.codec.protocol import Codec
from restbind.config import DEFAULT_TIMEOUT_MS, ClientSettings
from restbind.errors import ConfigurationError, RequestTimeoutError, TransportError
from restbind.infrastructure.event_loop import EventLoopThread
from restbind.infrastructure.http_client import AsyncRestClient
from restbind.schemas.descriptors import ListOf, ResponseType, require_collection
from restbind.utils.logger import get_logger

log = get_logger(__name__)

# Grace period for closing the async client on its own loop
_CLOSE_TIMEOUT = 5.0


def build_codec(
    *,
    naming: Union[NamingConvention, str, None] = None,
    fail_on_unknown_fields: Optional[bool] = None,
    date_format: Optional[str] = None,
    policy: Optional[SerializationPolicy] = None,
    codec: Optional[Codec] = None,
) -> Codec:
    """Resolve exactly one codec source into a Codec.

    Declarative options, a prebuilt policy and a custom codec are mutually
    exclusive. With none of them the default policy is used.
    """
    options = {
        key: value
        for key, value in (
            ("naming", naming),
            ("fail_on_unknown_fields", fail_on_unknown_fields),
            ("date_format", date_format),
        )
        if value is not None
    }
    sources = [name for name, given in (
        ("options", bool(options)),
        ("policy", policy is not None),
        ("codec", codec is not None),
    ) if given]
    if len(sources) > 1:
        raise ConfigurationError(
            "Pass policy options, a policy or a codec, not several",
            details={"given": sources},
        )

    if codec is not None:
        if not isinstance(codec, Codec):
            raise ConfigurationError(
                f"{type(codec).__name__} does not implement encode/decode"
            )
        return codec
    if policy is not None:
        if not isinstance(policy, SerializationPolicy):
            raise ConfigurationError(
                f"policy must be a SerializationPolicy, got {type(policy).__name__}"
            )
        return JsonCodec(policy)
    return JsonCodec.from_options(**options)


class RestClient:
    """Blocking JSON-over-HTTP client with one fixed codec and timeout.

    Safe to share between threads: calls only read the codec and timeout,
    and httpx owns the connection pool.
    """

    def __init__(
        self,
        naming: Union[NamingConvention, str, None] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        *,
        fail_on_unknown_fields: Optional[bool] = None,
        date_format: Optional[str] = None,
        policy: Optional[SerializationPolicy] = None,
        codec: Optional[Codec] = None,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        # Everything that can fail validation runs before the loop thread starts
        resolved = build_codec(
            naming=naming,
            fail_on_unknown_fields=fail_on_unknown_fields,
            date_format=date_format,
            policy=policy,
            codec=codec,
        )
        self._client = AsyncRestClient(
            resolved, timeout_ms, base_url=base_url, transport=transport
        )
        self._closed = False
        self._runner = EventLoopThread()
        self._runner.start()
        log.debug(
            "rest_client_created",
            codec=type(resolved).__name__,
            timeout_ms=timeout_ms,
            base_url=base_url or None,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RestClient":
        """Build a client from RESTBIND_* environment settings."""
        settings = settings or ClientSettings()
        return cls(
            naming=settings.codec.naming_convention,
            timeout_ms=settings.transport.timeout_ms,
            fail_on_unknown_fields=settings.codec.fail_on_unknown_fields,
            date_format=settings.codec.date_format,
            base_url=settings.transport.base_url,
            transport=transport,
        )

    @property
    def codec(self) -> Codec:
        return self._client.codec

    @property
    def policy(self) -> Optional[SerializationPolicy]:
        """The serialization policy, when the codec exposes one."""
        return getattr(self._client.codec, "policy", None)

    @property
    def timeout_ms(self) -> int:
        return self._client.timeout_ms

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Verbs ─────────────────────────────────────────────────────────────────

    def get(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return self._call(self._client.get(url, headers, response_type))

    def post(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return self._call(self._client.post(url, body, headers, response_type))

    def put(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return self._call(self._client.put(url, body, headers, response_type))

    def patch(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return self._call(self._client.patch(url, body, headers, response_type))

    def delete(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        """DELETE ``url``; returns None unless ``response_type`` is given."""
        return self._call(self._client.delete(url, headers, response_type))

    def get_list(
        self, url: str, headers: Optional[Mapping[str, str]], response_type: ListOf
    ) -> Any:
        """GET a JSON array decoded as ``response_type`` (a ListOf descriptor)."""
        require_collection(response_type)
        return self._call(self._client.get_list(url, headers, response_type))

    def post_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return self._call(self._client.post_for_list(url, body, headers, response_type))

    def put_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return self._call(self._client.put_for_list(url, body, headers, response_type))

    def patch_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return self._call(
            self._client.patch_for_list(url, body, headers, response_type)
        )

    # ── Blocking wait ─────────────────────────────────────────────────────────

    def _call(self, coro: Coroutine[Any, Any, Any]) -> Any:
        if self._closed:
            coro.close()
            raise RuntimeError("RestClient is closed")
        if self._runner.in_loop_thread():
            coro.close()
            raise RuntimeError("RestClient verbs cannot be called from its own event loop")

        future = self._runner.submit(coro)
        try:
            return future.result(timeout=self._client.timeout_seconds)
        except RequestTimeoutError:
            raise
        except concurrent.futures.TimeoutError as exc:
            # Cancelling the future cancels the task, which abandons the request
            future.cancel()
            log.warning("http_request_wait_timed_out", timeout_ms=self.timeout_ms)
            raise RequestTimeoutError(
                f"No response within {self.timeout_ms} ms",
                timeout_ms=self.timeout_ms,
            ) from exc
        except concurrent.futures.CancelledError as exc:
            raise TransportError("Request cancelled because the client was closed") from exc

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Close the connection pool and stop the event loop thread."""
        if self._closed:
            return
        if self._runner.in_loop_thread():
            raise RuntimeError("RestClient cannot be closed from its own event loop")
        self._closed = True
        try:
            self._runner.run(self._client.aclose(), timeout=_CLOSE_TIMEOUT)
        except (RuntimeError, concurrent.futures.TimeoutError) as exc:
            log.warning("rest_client_close_failed", error=str(exc))
        finally:
            self._runner.stop()
        log.debug("rest_client_closed")

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
