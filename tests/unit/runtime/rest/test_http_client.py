"""Precise unit tests for HTTPClient.

Tests focus on session management, error translation, response hooks and
cookie state.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from wikiflow.core import NetworkError, RequestTimeoutError
from wikiflow.runtime.rest import HTTPClient, HTTPResponse


def _fake_response(status=200, text='{"batchcomplete": true}', headers=None):
    response = MagicMock()
    response.status = status
    response.headers = headers or {"Content-Type": "application/json"}
    response.text = AsyncMock(return_value=text)
    return response


def _as_context(response):
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _install_session(client: HTTPClient, **attrs):
    session = MagicMock()
    session.closed = False
    for name, value in attrs.items():
        setattr(session, name, value)
    client._session = session
    return session


class TestHTTPClientSessionManagement:
    """Test HTTPClient session management."""

    def test_init(self):
        client = HTTPClient(timeout=10.0)
        assert client.timeout.total == 10.0
        assert client._session is None
        assert client._response_hooks == []

    @pytest.mark.asyncio
    async def test_session_property_creates_session(self):
        client = HTTPClient(headers={"User-Agent": "wikiflow-tests/1.0"})
        session = client.session
        assert isinstance(session, aiohttp.ClientSession)
        assert client._session is session
        await client.close()

    @pytest.mark.asyncio
    async def test_session_recreated_after_close_keeps_cookie_jar(self):
        """Cookies survive a session being recreated."""
        client = HTTPClient()
        first = client.session
        jar = client._cookie_jar
        await first.close()

        second = client.session
        assert second is not first
        assert client._cookie_jar is jar
        await client.close()

    @pytest.mark.asyncio
    async def test_close_idempotent(self):
        client = HTTPClient()
        await client.close()
        await client.close()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with HTTPClient() as client:
            assert client.session is not None
        assert client._session.closed


class TestHTTPClientRequests:
    """Test request execution and error translation."""

    @pytest.mark.asyncio
    async def test_json_body_decoded_and_hooks_called(self):
        client = HTTPClient()
        _install_session(
            client, request=MagicMock(return_value=_as_context(_fake_response(text='{"a": 1}')))
        )
        hook = MagicMock()
        client.add_response_hook(hook)

        result = await client.get("https://example.org/w/api.php", params={"action": "query"})

        assert isinstance(result, HTTPResponse)
        assert result.status == 200
        assert result.payload == {"a": 1}
        hook.assert_called_once_with(result)

    @pytest.mark.asyncio
    async def test_non_json_body_gives_none_payload(self):
        client = HTTPClient()
        _install_session(
            client,
            request=MagicMock(return_value=_as_context(_fake_response(status=502, text="<html>Bad gateway</html>"))),
        )

        result = await client.post("https://example.org/w/api.php", data={"action": "edit"})

        assert result.status == 502
        assert result.payload is None
        assert "Bad gateway" in result.text

    @pytest.mark.asyncio
    async def test_client_error_becomes_network_error(self):
        client = HTTPClient()
        _install_session(client, request=MagicMock(side_effect=aiohttp.ClientConnectionError("reset")))

        with pytest.raises(NetworkError):
            await client.get("https://example.org/w/api.php")

    @pytest.mark.asyncio
    async def test_timeout_becomes_request_timeout(self):
        client = HTTPClient()
        _install_session(client, request=MagicMock(side_effect=asyncio.TimeoutError()))

        with pytest.raises(RequestTimeoutError):
            await client.get("https://example.org/w/api.php")

    @pytest.mark.asyncio
    async def test_base_url_joined_for_relative_paths(self):
        client = HTTPClient(base_url="https://example.org")
        session = _install_session(client, request=MagicMock(return_value=_as_context(_fake_response())))

        await client.get("/w/api.php")

        assert session.request.call_args.args[1] == "https://example.org/w/api.php"


class TestHTTPClientCookies:
    def test_no_session_no_cookies(self):
        assert HTTPClient().cookies() == {}

    @pytest.mark.asyncio
    async def test_cookie_snapshot_and_clear(self):
        client = HTTPClient()
        client.session
        client._cookie_jar.update_cookies({"enwikiSession": "abc"})

        assert client.cookies() == {"enwikiSession": "abc"}

        client.clear_cookies()
        assert client.cookies() == {}
        await client.close()


class TestHTTPClientStream:
    @pytest.mark.asyncio
    async def test_stream_yields_body_reader(self):
        client = HTTPClient()
        response = MagicMock(status=200)
        response.content = MagicMock()
        _install_session(client, get=AsyncMock(return_value=response))

        async with client.stream("https://stream.example.org/v2/stream/recentchange") as reader:
            assert reader is response.content

        response.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_error_status(self):
        client = HTTPClient()
        response = MagicMock(status=503)
        _install_session(client, get=AsyncMock(return_value=response))

        with pytest.raises(NetworkError) as exc_info:
            async with client.stream("https://stream.example.org/v2/stream/recentchange"):
                pass

        assert exc_info.value.status_code == 503
        response.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_connect_failure(self):
        client = HTTPClient()
        _install_session(client, get=AsyncMock(side_effect=aiohttp.ClientConnectionError("refused")))

        with pytest.raises(NetworkError):
            async with client.stream("https://stream.example.org/v2/stream/recentchange"):
                pass

    @pytest.mark.asyncio
    async def test_stream_read_failure_becomes_network_error(self):
        """A body cut off mid-read surfaces as NetworkError, not a raw aiohttp error."""
        client = HTTPClient()
        response = MagicMock(status=200)
        response.content = MagicMock()
        response.content.readany = AsyncMock(
            side_effect=aiohttp.ClientPayloadError("Response payload is not completed")
        )
        _install_session(client, get=AsyncMock(return_value=response))

        with pytest.raises(NetworkError) as exc_info:
            async with client.stream("https://stream.example.org/v2/stream/recentchange") as reader:
                await reader.readany()

        assert isinstance(exc_info.value.__cause__, aiohttp.ClientPayloadError)
        response.close.assert_called_once()
