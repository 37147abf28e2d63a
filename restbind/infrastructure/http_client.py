"""Async typed HTTP client: httpx.AsyncClient bound to one codec and one timeout."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from restbind.codec.json_codec import JsonCodec
from restbind.codec.protocol import Codec
from restbind.config import DEFAULT_TIMEOUT_MS
from restbind.errors import (
    ConfigurationError,
    DecodeError,
    RequestTimeoutError,
    ResponseStatusError,
    TransportError,
)
from restbind.exchange import NO_BODY, CallState, Exchange, RequestDescriptor
from restbind.schemas.descriptors import ListOf, ResponseType, require_collection
from restbind.utils.logger import get_logger, header_names, log_with_context

log = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"

# Longest slice of an error response body kept on ResponseStatusError
_ERROR_BODY_LIMIT = 500


class AsyncRestClient:
    """Thin async wrapper around httpx.AsyncClient with a typed JSON codec.

    One instance per remote service keeps codec policy and timeout
    independently configurable. Both are fixed for the instance's lifetime.
    """

    def __init__(
        self,
        codec: Optional[Codec] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        *,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise ConfigurationError(
                "timeout_ms must be a positive integer",
                details={"timeout_ms": repr(timeout_ms)},
            )
        self._codec = codec if codec is not None else JsonCodec()
        self._timeout_ms = timeout_ms
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=transport,
        )

    @property
    def codec(self) -> Codec:
        return self._codec

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_ms / 1000

    # ── Verbs ─────────────────────────────────────────────────────────────────

    async def get(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return await self.request("GET", url, headers=headers, response_type=response_type)

    async def post(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return await self.request(
            "POST", url, headers=headers, body=body, response_type=response_type
        )

    async def put(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return await self.request(
            "PUT", url, headers=headers, body=body, response_type=response_type
        )

    async def patch(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        return await self.request(
            "PATCH", url, headers=headers, body=body, response_type=response_type
        )

    async def delete(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: ResponseType = None,
    ) -> Any:
        """DELETE; the response body is discarded unless a descriptor is given."""
        return await self.request(
            "DELETE",
            url,
            headers=headers,
            response_type=response_type,
            discard_body=response_type is None,
        )

    async def get_list(
        self, url: str, headers: Optional[Mapping[str, str]], response_type: ListOf
    ) -> Any:
        require_collection(response_type)
        return await self.get(url, headers, response_type)

    async def post_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return await self.post(url, body, headers, response_type)

    async def put_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return await self.put(url, body, headers, response_type)

    async def patch_for_list(
        self,
        url: str,
        body: Any,
        headers: Optional[Mapping[str, str]],
        response_type: ListOf,
    ) -> Any:
        require_collection(response_type)
        return await self.patch(url, body, headers, response_type)

    # ── Exchange ──────────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = NO_BODY,
        response_type: ResponseType = None,
        discard_body: bool = False,
    ) -> Any:
        descriptor = RequestDescriptor(
            method=method.upper(),
            url=url,
            headers=httpx.Headers(headers or {}),
            body=body,
            response_type=response_type,
            discard_body=discard_body,
        )
        return await self.execute(descriptor)

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """Run one exchange for ``descriptor`` and return the decoded value.

        The whole exchange, decoding included, is bounded by the client's
        timeout. Cancellation from outside (the sync facade giving up on its
        wait) abandons the in-flight request.
        """
        exchange = Exchange(descriptor)
        bound = log_with_context(log, method=descriptor.method, url=descriptor.url)
        request = self._build_request(descriptor)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await self._run(exchange, request, bound)
        except RequestTimeoutError:
            raise
        except TimeoutError as exc:
            raise self._timed_out(exchange, bound, exc) from exc
        except asyncio.CancelledError:
            if not exchange.state.is_terminal:
                exchange.advance(CallState.TIMED_OUT)
            bound.warning(
                "http_request_abandoned",
                state=exchange.state.value,
                duration_ms=exchange.elapsed_ms,
            )
            raise

    def _build_request(self, descriptor: RequestDescriptor) -> httpx.Request:
        headers = httpx.Headers(descriptor.headers)
        content = None
        if descriptor.has_body:
            content = self._codec.encode(descriptor.body)
            headers["Content-Type"] = JSON_CONTENT_TYPE
        try:
            return self._client.build_request(
                descriptor.method, descriptor.url, headers=headers, content=content
            )
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid url: {descriptor.url!r}") from exc

    async def _run(self, exchange: Exchange, request: httpx.Request, bound) -> Any:
        descriptor = exchange.request
        exchange.advance(CallState.SENDING)
        bound.debug("http_request_started", headers=header_names(descriptor.headers))

        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise self._timed_out(exchange, bound, exc) from exc
        except httpx.RequestError as exc:
            raise self._transport_failed(exchange, bound, exc) from exc

        exchange.advance(CallState.AWAITING_RESPONSE)
        exchange.status_code = response.status_code
        try:
            content = await response.aread()
        except httpx.TimeoutException as exc:
            raise self._timed_out(exchange, bound, exc) from exc
        except httpx.RequestError as exc:
            raise self._transport_failed(exchange, bound, exc) from exc
        finally:
            await response.aclose()

        if response.is_error:
            exchange.advance(CallState.STATUS_FAILED)
            bound.warning(
                "http_request_rejected",
                status_code=response.status_code,
                duration_ms=exchange.elapsed_ms,
            )
            raise ResponseStatusError(
                f"{descriptor.method} {descriptor.url} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text[:_ERROR_BODY_LIMIT],
            )

        if descriptor.discard_body:
            value = None
        else:
            try:
                value = self._codec.decode(content, descriptor.response_type)
            except DecodeError as exc:
                exchange.advance(CallState.DECODE_FAILED)
                bound.warning(
                    "http_response_decode_failed",
                    status_code=response.status_code,
                    error=exc.message,
                )
                raise

        exchange.advance(CallState.DECODED)
        bound.info(
            "http_request_completed",
            status_code=response.status_code,
            duration_ms=exchange.elapsed_ms,
        )
        return value

    def _timed_out(self, exchange: Exchange, bound, exc: BaseException) -> RequestTimeoutError:
        if not exchange.state.is_terminal:
            exchange.advance(CallState.TIMED_OUT)
        bound.warning(
            "http_request_timed_out",
            timeout_ms=self._timeout_ms,
            duration_ms=exchange.elapsed_ms,
        )
        return RequestTimeoutError(
            f"No response within {self._timeout_ms} ms",
            timeout_ms=self._timeout_ms,
            details={"error_type": type(exc).__name__},
        )

    def _transport_failed(self, exchange: Exchange, bound, exc: Exception) -> TransportError:
        exchange.advance(CallState.TRANSPORT_FAILED)
        bound.warning(
            "http_request_transport_failed",
            error=str(exc),
            error_type=type(exc).__name__,
            duration_ms=exchange.elapsed_ms,
        )
        return TransportError(
            f"{exchange.request.method} {exchange.request.url} failed: {exc}",
            details={"error_type": type(exc).__name__},
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncRestClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
