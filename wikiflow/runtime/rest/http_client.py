"""Async HTTP client wrapper around one aiohttp session.

The session owns the cookie jar, which is the process-wide session state
for an endpoint: aiohttp updates it synchronously while a response is being
handled, so no coroutine can observe a half-applied update.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ...core.exceptions import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)

ResponseHook = Callable[["HTTPResponse"], None]


@dataclass(frozen=True)
class HTTPResponse:
    """Status, headers and decoded JSON body of one exchange."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Any = None
    text: str = ""


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._cookie_jar: aiohttp.CookieJar | None = None
        self._response_hooks: list[ResponseHook] = []

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            if self._cookie_jar is None:
                self._cookie_jar = aiohttp.CookieJar()
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers=self._headers,
                cookie_jar=self._cookie_jar,
            )
        return self._session

    def add_response_hook(self, hook: ResponseHook) -> None:
        """Register a callback invoked with every completed response."""
        self._response_hooks.append(hook)

    def cookies(self) -> dict[str, str]:
        """Read-only snapshot of the session cookies."""
        if self._cookie_jar is None:
            return {}
        return {cookie.key: cookie.value for cookie in self._cookie_jar}

    def clear_cookies(self) -> None:
        if self._cookie_jar is not None:
            self._cookie_jar.clear()

    def _url(self, url: str) -> str:
        # If base_url is set and url is relative, combine them
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url}{url}"
        return url

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        """Send one request and decode a JSON body.

        Raises:
            RequestTimeoutError: The request exceeded its timeout
            NetworkError: Connection failure or an undecodable body
        """
        target = self._url(url)
        try:
            async with self.session.request(
                method, target, params=params, data=data, headers=headers
            ) as response:
                text = await response.text()
                result = HTTPResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    payload=_decode_json(text),
                    text=text,
                )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"{method} {target} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"{method} {target} failed: {e}") from e

        logger.debug("http_response", extra={"method": method, "status": result.status})
        for hook in self._response_hooks:
            hook(result)
        return result

    async def get(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        """GET request."""
        return await self.request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        """POST request with a form or multipart body."""
        return await self.request("POST", url, data=data, headers=headers)

    @asynccontextmanager
    async def stream(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        connect_timeout: float | None = None,
    ) -> AsyncIterator[aiohttp.StreamReader]:
        """Open a long-lived GET and yield its body reader.

        Only connection setup is bounded by a timeout here; callers bound
        each read themselves.
        """
        target = self._url(url)
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout, sock_read=None)
        try:
            response = await self.session.get(
                target, params=params, headers=headers, timeout=timeout
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"connecting to {target} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"connecting to {target} failed: {e}") from e

        try:
            if response.status >= 400:
                raise NetworkError(
                    f"stream {target} answered HTTP {response.status}", status_code=response.status
                )
            try:
                yield response.content
            except asyncio.CancelledError:
                raise
            except aiohttp.ClientError as e:
                raise NetworkError(f"stream {target} broke: {e}") from e
        finally:
            # A half-read event stream cannot go back to the pool
            response.close()

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()


def _decode_json(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None
