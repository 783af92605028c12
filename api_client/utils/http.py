"""HTTP clients with fixed-delay retries and optional debug diagnostics."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Self

import httpx
from pydantic import BaseModel
from tenacity import AsyncRetrying, RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from api_client.config.settings import ClientConfig
from api_client.schemas.models import APIRequest, APIResponse
from api_client.utils.errors import (
    APIClientError,
    NetworkError,
    RequestConstructionError,
    ResponseReadError,
    SerializationError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# RFC 9110 token characters.
_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def encode_body(body: Any) -> bytes | None:
    """Serialize a request body to compact UTF-8 JSON; ``None`` means no body."""

    if body is None:
        return None
    try:
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json")
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as error:
        raise SerializationError(f"Request body is not JSON serializable: {error}") from error


def _as_seconds(delay: float | timedelta) -> float:
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


def _decode(body: bytes | None) -> str:
    return body.decode("utf-8", errors="replace") if body else ""


class _BaseAPIClient:
    """State and request plumbing shared by the blocking and async clients."""

    _client: httpx.Client | httpx.AsyncClient

    def __init__(
        self,
        base_url: str,
        debug: bool = False,
        max_retries: int = 3,
        retry_delay: float | timedelta = 2.0,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url
        self.debug = debug
        self.max_retries = max_retries
        self.retry_delay = _as_seconds(retry_delay)
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> Self:
        """Build a client from validated configuration."""

        return cls(
            config.base_url,
            debug=config.debug,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay_seconds,
            timeout_seconds=config.timeout_seconds,
            **kwargs,
        )

    def _retry_options(self) -> dict[str, Any]:
        return {
            "stop": stop_after_attempt(self.max_retries + 1),
            "wait": wait_fixed(self.retry_delay),
            "retry": retry_if_exception_type(APIClientError),
            "before_sleep": self._log_retry if self.debug else None,
            "reraise": True,
        }

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        LOGGER.info(
            "HTTP attempt failed, retrying",
            extra={
                "attempt": retry_state.attempt_number,
                "max_attempts": self.max_retries + 1,
                "delay_seconds": self.retry_delay,
                "error": str(error),
            },
        )

    def _prepare(self, request: APIRequest) -> httpx.Request:
        """Build the outbound request for one attempt."""

        url = f"{self.base_url}{request.endpoint}"
        content = encode_body(request.body)

        if not _METHOD_TOKEN.match(request.method):
            raise RequestConstructionError(f"Invalid HTTP method: {request.method!r}", method=request.method, url=url)
        try:
            outbound = self._client.build_request(request.method, url, content=content)
            for key, value in request.headers.items():
                outbound.headers[key] = value
        except (httpx.InvalidURL, TypeError, ValueError) as error:
            raise RequestConstructionError(
                f"Cannot build request for URL: {url}: {error}",
                method=request.method,
                url=url,
            ) from error
        if outbound.url.scheme not in {"http", "https"} or not outbound.url.host:
            raise RequestConstructionError(f"Invalid request URL: {url}", method=request.method, url=url)

        if self.debug:
            LOGGER.info(
                "HTTP request %s %s",
                outbound.method,
                outbound.url,
                extra={
                    "method": outbound.method,
                    "url": str(outbound.url),
                    "headers": dict(outbound.headers),
                    "body": _decode(content),
                },
            )
        return outbound

    def _timed_out(self, outbound: httpx.Request) -> NetworkError:
        return NetworkError(
            f"HTTP request timed out after {self.timeout_seconds}s for URL: {outbound.url}",
            method=outbound.method,
            url=str(outbound.url),
        )

    def _finish(self, response: httpx.Response, body: bytes) -> APIResponse:
        """Turn a fully read response into an APIResponse."""

        if self.debug:
            LOGGER.info(
                "HTTP response %s %s",
                response.status_code,
                response.reason_phrase,
                extra={
                    "status_code": response.status_code,
                    "headers": dict(response.headers),
                    "body": _decode(body),
                },
            )
        headers: dict[str, list[str]] = {}
        for key, value in response.headers.multi_items():
            headers.setdefault(key, []).append(value)
        return APIResponse(status_code=response.status_code, headers=headers, body=body)


class APIClient(_BaseAPIClient):
    """Blocking client; the calling thread sleeps between attempts.

    Each attempt is bounded by ``timeout_seconds`` from sending the request to
    the last body byte. Debug records go to the ``api_client.utils.http``
    logger at INFO, so the application must configure logging (for example
    with ``api_client.utils.logging.configure_logging("INFO")``) to see them.
    """

    def __init__(
        self,
        base_url: str,
        debug: bool = False,
        max_retries: int = 3,
        retry_delay: float | timedelta = 2.0,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        super().__init__(base_url, debug, max_retries, retry_delay, timeout_seconds=timeout_seconds)
        self._sleep = sleep or time.sleep
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport, follow_redirects=True)

    def send_request(self, request: APIRequest) -> APIResponse:
        """Send with up to ``max_retries`` retries; raise the last error if every attempt fails."""

        for attempt in Retrying(sleep=self._sleep, **self._retry_options()):
            with attempt:
                return self.send(request)
        raise AssertionError("retry loop ended without a result")

    def send(self, request: APIRequest) -> APIResponse:
        """Run a single attempt without retrying."""

        outbound = self._prepare(request)
        deadline = time.monotonic() + self.timeout_seconds
        try:
            response = self._client.send(outbound, stream=True)
        except httpx.HTTPError as error:
            raise NetworkError(
                f"HTTP request failed for URL: {outbound.url}",
                method=outbound.method,
                url=str(outbound.url),
            ) from error
        try:
            chunks: list[bytes] = []
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise self._timed_out(outbound)
            if time.monotonic() > deadline:
                raise self._timed_out(outbound)
            body = b"".join(chunks)
        except httpx.HTTPError as error:
            raise ResponseReadError(
                f"Failed to read response body for URL: {outbound.url}",
                method=outbound.method,
                url=str(outbound.url),
            ) from error
        finally:
            response.close()
        return self._finish(response, body)

    def close(self) -> None:
        """Close underlying transport."""

        self._client.close()

    def __enter__(self) -> APIClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class AsyncAPIClient(_BaseAPIClient):
    """Asyncio client; waits between attempts without blocking the event loop.

    Timeout and debug logging behave as for :class:`APIClient`.
    """

    def __init__(
        self,
        base_url: str,
        debug: bool = False,
        max_retries: int = 3,
        retry_delay: float | timedelta = 2.0,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(base_url, debug, max_retries, retry_delay, timeout_seconds=timeout_seconds)
        self._sleep = sleep or asyncio.sleep
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport, follow_redirects=True)

    async def send_request(self, request: APIRequest) -> APIResponse:
        """Send with up to ``max_retries`` retries; raise the last error if every attempt fails."""

        async for attempt in AsyncRetrying(sleep=self._sleep, **self._retry_options()):
            with attempt:
                return await self.send(request)
        raise AssertionError("retry loop ended without a result")

    async def send(self, request: APIRequest) -> APIResponse:
        """Run a single attempt without retrying."""

        outbound = self._prepare(request)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response, body = await self._exchange(outbound)
        except TimeoutError as error:
            raise self._timed_out(outbound) from error
        return self._finish(response, body)

    async def _exchange(self, outbound: httpx.Request) -> tuple[httpx.Response, bytes]:
        try:
            response = await self._client.send(outbound, stream=True)
        except httpx.HTTPError as error:
            raise NetworkError(
                f"HTTP request failed for URL: {outbound.url}",
                method=outbound.method,
                url=str(outbound.url),
            ) from error
        try:
            body = await response.aread()
        except httpx.HTTPError as error:
            raise ResponseReadError(
                f"Failed to read response body for URL: {outbound.url}",
                method=outbound.method,
                url=str(outbound.url),
            ) from error
        finally:
            await response.aclose()
        return response, body

    async def close(self) -> None:
        """Close underlying transport."""

        await self._client.aclose()

    async def __aenter__(self) -> AsyncAPIClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
