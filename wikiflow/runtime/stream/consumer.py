"""Change-stream consumer: a resilient subscription to a server-sent event feed.

State machine::

    CONNECTING -> STREAMING -> STALLED | DISCONNECTED -> BACKOFF -> CONNECTING
                                                      \\-> FAILED (budget spent)
    any state  -> CLOSED (caller stopped iterating or cancelled)

The checkpoint is advanced before an event is yielded, so a consumer that
persists ``checkpoint`` after handling an event, or even before, never loses
that event on resume; at worst it sees it again. Reconnects send the last
event id in the ``Last-Event-ID`` header.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from ...core.config import StreamConfig
from ...core.constants import RECENT_CHANGE_STREAM, REVISION_SCORE_STREAM
from ...core.enums import StreamState
from ...core.exceptions import NetworkError, ProtocolError, SubscriptionError
from ...models.events import ConnectionEvent
from ...models.stream import StreamCheckpoint, StreamEvent
from ..rest.http_client import HTTPClient
from .sse import SSEDecoder

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

StateListener = Callable[[ConnectionEvent], None]


class _Stalled(Exception):
    """No bytes arrived within the heartbeat window."""


class ChangeStreamConsumer:
    """Long-lived subscriber with checkpointed reconnects."""

    def __init__(
        self,
        config: StreamConfig | None = None,
        http: HTTPClient | None = None,
        *,
        on_state_change: StateListener | None = None,
        sleep=asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._conf = config or StreamConfig()
        self._owns_http = http is None
        self._http = http or HTTPClient(headers={"User-Agent": self._conf.user_agent})
        self._on_state_change = on_state_change
        self._sleep = sleep
        self._clock = clock
        self._state = StreamState.IDLE
        self._checkpoint = StreamCheckpoint(stream=self._conf.stream_id)
        self._attempt = 0
        self.reconnects = 0

    @classmethod
    def recent_changes(cls, **kwargs) -> ChangeStreamConsumer:
        """Consumer for the ``recentchange`` stream; kwargs go to StreamConfig."""
        return cls(StreamConfig.for_stream(RECENT_CHANGE_STREAM, **kwargs))

    @classmethod
    def revision_scores(cls, **kwargs) -> ChangeStreamConsumer:
        """Consumer for the ``revision-score`` stream."""
        return cls(StreamConfig.for_stream(REVISION_SCORE_STREAM, **kwargs))

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def checkpoint(self) -> StreamCheckpoint:
        """Checkpoint of the last delivered event, for external persistence."""
        return self._checkpoint

    @property
    def config(self) -> StreamConfig:
        return self._conf

    def _set_state(self, state: StreamState, error: BaseException | None = None) -> None:
        if state is self._state:
            return
        self._state = state
        event = ConnectionEvent.transition(
            state,
            self._checkpoint.stream,
            attempt=self._attempt,
            last_event_id=self._checkpoint.last_event_id,
            error=error,
        )
        log = logger.warning if error is not None else logger.debug
        log(
            "stream_state",
            extra={
                "stream": event.stream,
                "state": state.value,
                "attempt": event.attempt,
                "error": event.error,
            },
        )
        if self._on_state_change is not None:
            self._on_state_change(event)

    def _next_delay(self, delay: float) -> float:
        """Double the delay, capped to max_reconnect_delay."""
        return min(delay * 2, self._conf.max_reconnect_delay)

    def _jittered(self, delay: float) -> float:
        jitter = self._conf.jitter
        if not jitter:
            return delay
        return max(0.0, delay * random.uniform(1 - jitter, 1 + jitter))

    def _request_headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self._checkpoint.last_event_id:
            headers["Last-Event-ID"] = self._checkpoint.last_event_id
        return headers

    async def subscribe(
        self,
        checkpoint: StreamCheckpoint | None = None,
        *,
        since: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield events forever, reconnecting as needed.

        Args:
            checkpoint: Resume after this checkpoint's last event id
            since: ISO-8601 timestamp to start from when there is no event id
                to resume from (EventStreams ``since`` parameter)

        Raises:
            SubscriptionError: ``max_reconnect_attempts`` consecutive
                connections failed; carries the last checkpoint
        """
        conf = self._conf
        if checkpoint is not None:
            if checkpoint.stream != conf.stream_id:
                raise ValueError(
                    f"checkpoint for stream {checkpoint.stream!r} used on {conf.stream_id!r}"
                )
            self._checkpoint = checkpoint

        delay = conf.base_reconnect_delay
        failures = 0
        self._attempt = 0
        last_error: BaseException | None = None

        try:
            while True:
                self._attempt += 1
                self._set_state(StreamState.CONNECTING)
                params = None
                if since and not self._checkpoint.last_event_id:
                    params = {"since": since}
                server_retry: float | None = None
                sustained = False

                try:
                    async with self._http.stream(
                        conf.url,
                        params=params,
                        headers=self._request_headers(),
                        connect_timeout=conf.connect_timeout,
                    ) as reader:
                        self._set_state(StreamState.STREAMING)
                        decoder = SSEDecoder()
                        connected_at = self._clock()

                        while True:
                            try:
                                chunk = await asyncio.wait_for(
                                    reader.readany(), timeout=conf.heartbeat_timeout
                                )
                            except asyncio.TimeoutError:
                                raise _Stalled(
                                    f"no data for {conf.heartbeat_timeout}s on {conf.url}"
                                ) from None
                            except aiohttp.ClientError as e:
                                raise NetworkError(f"reading {conf.url} failed: {e}") from e
                            if not chunk:
                                break

                            for event in decoder.feed(chunk):
                                if event.id:
                                    self._checkpoint = self._checkpoint.advance(event.id)
                                yield event

                                if not sustained and self._clock() - connected_at >= conf.sustained_delivery:
                                    sustained = True
                                    delay = conf.base_reconnect_delay
                                    failures = 0

                            if decoder.reconnect_ms is not None:
                                server_retry = decoder.reconnect_ms / 1000.0

                    last_error = None
                    self._set_state(StreamState.DISCONNECTED)
                except _Stalled as e:
                    last_error = e
                    self._set_state(StreamState.STALLED, error=e)
                except (NetworkError, ProtocolError) as e:
                    last_error = e
                    self._set_state(StreamState.DISCONNECTED, error=e)

                failures += 1
                if conf.max_reconnect_attempts is not None and failures > conf.max_reconnect_attempts:
                    self._set_state(StreamState.FAILED, error=last_error)
                    raise SubscriptionError(
                        f"gave up on {conf.url} after {failures} failed connections",
                        checkpoint=self._checkpoint,
                        last_error=last_error,
                    ) from last_error

                wait = self._jittered(delay)
                if server_retry is not None:
                    wait = max(wait, server_retry)
                self._set_state(StreamState.BACKOFF)
                logger.info(
                    "stream_reconnect",
                    extra={"stream": self._checkpoint.stream, "delay": round(wait, 3), "failures": failures},
                )
                await self._sleep(wait)
                delay = self._next_delay(delay)
                self.reconnects += 1
        finally:
            if self._state is not StreamState.FAILED:
                self._set_state(StreamState.CLOSED)

    async def subscribe_as(
        self,
        model: type[M],
        checkpoint: StreamCheckpoint | None = None,
        *,
        since: str | None = None,
    ) -> AsyncIterator[M]:
        """Like ``subscribe`` but validate each message payload into ``model``.

        Events that are not ``message`` events are skipped, and so are
        payloads that are not JSON or do not validate; those are logged at
        WARNING with the event id. The checkpoint still moves past them.
        """
        async with aclosing(self.subscribe(checkpoint, since=since)) as events:
            async for event in events:
                if event.event != "message":
                    continue
                try:
                    item = event.parse_as(model)
                except (ValidationError, ProtocolError) as e:
                    logger.warning(
                        "stream_event_skipped",
                        extra={
                            "stream": self._checkpoint.stream,
                            "event_id": event.id,
                            "model": model.__name__,
                            "error_type": type(e).__name__,
                            "error_message": str(e),
                        },
                    )
                    continue
                yield item

    async def close(self) -> None:
        """Close the HTTP session if this consumer created it."""
        if self._owns_http:
            await self._http.close()
