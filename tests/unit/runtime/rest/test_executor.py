"""Unit tests for RequestExecutor retry, throttle and token-refresh behavior."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wikiflow.core import (
    InvalidTokenError,
    LogicalRequest,
    NetworkError,
    ProtocolError,
    RequestMethod,
    RequestTimeoutError,
    RetryExhaustedError,
    RetryPolicy,
    SemanticApiError,
    ThrottleError,
    TokenKind,
)
from wikiflow.models import ApiResponse, Token
from wikiflow.runtime.rest import AdmissionGate, RequestExecutor
from wikiflow.runtime.tokens import TokenCache

API_URL = "https://test.wikipedia.org/w/api.php"

OK = ApiResponse.from_payload({"batchcomplete": True})


def _executor(side_effect, *, max_attempts=5, tokens=None):
    transport = MagicMock()
    transport.api_url = API_URL
    transport.send = AsyncMock(side_effect=side_effect)
    sleep = AsyncMock()
    executor = RequestExecutor(
        transport,
        retry=RetryPolicy(max_attempts=max_attempts, base_delay=1.0, multiplier=2.0, jitter=0.0),
        # max_wait=0 keeps throttle pauses from blocking the test in real time
        gate=AdmissionGate(max_concurrency=2, max_wait=0.0),
        tokens=tokens,
        sleep=sleep,
    )
    return executor, transport, sleep


def _edit():
    return LogicalRequest.create(
        "edit", title="Sandbox", text="hello", method=RequestMethod.WRITE, token=TokenKind.CSRF
    )


def _token_cache(*values):
    fetch = AsyncMock(side_effect=[Token(kind=TokenKind.CSRF, value=v) for v in values])
    return TokenCache(API_URL, fetch), fetch


class TestExecutorSuccess:
    @pytest.mark.asyncio
    async def test_single_attempt(self):
        executor, transport, sleep = _executor([OK])
        response = await executor.execute(LogicalRequest.create("query", meta="siteinfo"))
        assert response is OK
        assert transport.send.await_count == 1
        sleep.assert_not_awaited()

    def test_endpoint(self):
        executor, _, _ = _executor([OK])
        assert executor.endpoint == API_URL


class TestExecutorThrottle:
    @pytest.mark.asyncio
    async def test_attempts_capped_by_budget(self):
        """A call throttled on every attempt stops at max_attempts."""
        executor, transport, sleep = _executor(
            [ThrottleError("ratelimited")] * 10, max_attempts=3
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await executor.execute(LogicalRequest.create("query"))

        assert transport.send.await_count == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ThrottleError)
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_attempts_stop_at_first_success(self):
        executor, transport, _ = _executor(
            [ThrottleError("maxlag", lag=1.0), ThrottleError("maxlag", lag=1.0), OK], max_attempts=5
        )

        response = await executor.execute(LogicalRequest.create("query"))

        assert response is OK
        assert transport.send.await_count == 3

    @pytest.mark.asyncio
    async def test_retry_after_takes_precedence(self):
        executor, _, sleep = _executor([ThrottleError("maxlag", retry_after=7.0, lag=3.0), OK])
        await executor.execute(LogicalRequest.create("query"))
        sleep.assert_awaited_once_with(7.0)

    @pytest.mark.asyncio
    async def test_lag_used_without_retry_after(self):
        executor, _, sleep = _executor([ThrottleError("maxlag", lag=3.0), OK])
        await executor.execute(LogicalRequest.create("query"))
        sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_backoff_schedule_without_hint(self):
        executor, _, sleep = _executor(
            [ThrottleError("ratelimited"), ThrottleError("ratelimited"), OK]
        )
        await executor.execute(LogicalRequest.create("query"))
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_throttle_pauses_gate_until_success(self):
        executor, _, _ = _executor([ThrottleError("maxlag", retry_after=30.0), OK])
        await executor.execute(LogicalRequest.create("query"))
        assert not executor.gate.paused

    @pytest.mark.asyncio
    async def test_exhausted_throttle_leaves_gate_paused(self):
        executor, _, _ = _executor([ThrottleError("maxlag", retry_after=30.0)] * 2, max_attempts=2)
        with pytest.raises(RetryExhaustedError):
            await executor.execute(LogicalRequest.create("query"))
        assert executor.gate.paused

    @pytest.mark.asyncio
    async def test_throttled_success_pauses_gate(self):
        throttled = ApiResponse.from_payload({"batchcomplete": True}, {"Retry-After": "30"})
        executor, _, _ = _executor([throttled])
        await executor.execute(LogicalRequest.create("query"))
        assert executor.gate.paused


class TestExecutorNetwork:
    @pytest.mark.asyncio
    async def test_network_and_throttle_share_budget(self):
        executor, transport, _ = _executor(
            [NetworkError("reset"), ThrottleError("ratelimited"), RequestTimeoutError("slow")],
            max_attempts=3,
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await executor.execute(LogicalRequest.create("query"))

        assert transport.send.await_count == 3
        assert isinstance(exc_info.value.last_error, RequestTimeoutError)
        assert isinstance(exc_info.value.__cause__, RequestTimeoutError)

    @pytest.mark.asyncio
    async def test_network_error_recovers(self):
        executor, _, sleep = _executor([NetworkError("reset", status_code=502), OK])
        assert await executor.execute(LogicalRequest.create("query")) is OK
        sleep.assert_awaited_once_with(1.0)


class TestExecutorNonRetryable:
    @pytest.mark.asyncio
    async def test_semantic_error_surfaces_immediately(self):
        executor, transport, sleep = _executor([SemanticApiError("protectedpage", "protected"), OK])

        with pytest.raises(SemanticApiError):
            await executor.execute(LogicalRequest.create("query"))

        assert transport.send.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_protocol_error_surfaces_immediately(self):
        executor, transport, _ = _executor([ProtocolError("garbage"), OK])
        with pytest.raises(ProtocolError):
            await executor.execute(LogicalRequest.create("query"))
        assert transport.send.await_count == 1


class TestExecutorTokens:
    @pytest.mark.asyncio
    async def test_token_attached(self):
        tokens, fetch = _token_cache("C1")
        executor, transport, _ = _executor([OK], tokens=tokens)

        await executor.execute(_edit())

        sent = transport.send.await_args.args[0]
        assert sent.params["token"] == "C1"
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_token_refreshed_once(self):
        """Rejected T1 -> invalidate, fetch T2, retry once: two fetches, two attempts."""
        tokens, fetch = _token_cache("T1", "T2")
        executor, transport, sleep = _executor(
            [InvalidTokenError("badtoken", kind="csrf"), OK], tokens=tokens
        )

        response = await executor.execute(_edit())

        assert response is OK
        assert fetch.await_count == 2
        assert transport.send.await_count == 2
        sent = [c.args[0].params["token"] for c in transport.send.await_args_list]
        assert sent == ["T1", "T2"]
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_rejections_refresh_once(self):
        """Two writes rejected with the same T1 share one refreshed T2."""
        tokens, fetch = _token_cache("T1", "T2")

        def answer(request):
            if request.params["token"] == "T1":
                raise InvalidTokenError("badtoken", kind="csrf")
            return OK

        executor, transport, _ = _executor(answer, tokens=tokens)

        results = await asyncio.gather(executor.execute(_edit()), executor.execute(_edit()))

        assert results == [OK, OK]
        assert fetch.await_count == 2
        sent = [c.args[0].params["token"] for c in transport.send.await_args_list]
        assert sent.count("T1") == 2
        assert sent.count("T2") == 2

    @pytest.mark.asyncio
    async def test_second_invalid_token_is_fatal(self):
        tokens, fetch = _token_cache("T1", "T2", "T3")
        executor, transport, _ = _executor(
            [InvalidTokenError("badtoken"), InvalidTokenError("badtoken"), OK], tokens=tokens
        )

        with pytest.raises(InvalidTokenError):
            await executor.execute(_edit())

        assert transport.send.await_count == 2
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_token_refresh_does_not_consume_budget(self):
        tokens, _ = _token_cache("T1", "T2")
        executor, transport, _ = _executor(
            [InvalidTokenError("badtoken"), ThrottleError("ratelimited"), OK],
            max_attempts=2,
            tokens=tokens,
        )

        assert await executor.execute(_edit()) is OK
        assert transport.send.await_count == 3

    @pytest.mark.asyncio
    async def test_invalid_token_without_token_kind_is_fatal(self):
        executor, transport, _ = _executor([InvalidTokenError("notoken"), OK])
        with pytest.raises(InvalidTokenError):
            await executor.execute(LogicalRequest.create("query"))
        assert transport.send.await_count == 1

    @pytest.mark.asyncio
    async def test_token_request_without_cache_rejected(self):
        executor, transport, _ = _executor([OK])
        with pytest.raises(ValueError):
            await executor.execute(_edit())
        transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_successful_login_invalidates_tokens(self):
        tokens, _ = _token_cache("C1")
        csrf = await tokens.acquire(TokenKind.CSRF)
        login_ok = ApiResponse.from_payload({"login": {"result": "Success", "lgusername": "Example"}})
        executor, _, _ = _executor([login_ok], tokens=tokens)

        await executor.execute(
            LogicalRequest.create("login", lgname="Example", lgpassword="pw", method=RequestMethod.WRITE)
        )

        assert not csrf.valid
        assert tokens.peek(TokenKind.CSRF) is None

    @pytest.mark.asyncio
    async def test_failed_login_keeps_tokens(self):
        tokens, _ = _token_cache("C1")
        csrf = await tokens.acquire(TokenKind.CSRF)
        login_failed = ApiResponse.from_payload({"login": {"result": "Failed", "reason": "nope"}})
        executor, _, _ = _executor([login_failed], tokens=tokens)

        await executor.execute(LogicalRequest.create("login", lgname="Example", method=RequestMethod.WRITE))

        assert csrf.valid
