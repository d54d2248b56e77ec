"""Request admission: concurrency cap plus a process-wide pause window.

When the server reports sustained load the executor calls ``pause``; new
requests then wait for the window to pass (bounded by ``max_wait``) before
they take one of the ``max_concurrency`` slots. Requests already in flight
are not affected.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class AdmissionGate:
    """Bounded in-flight requests with a shared throttle window."""

    def __init__(self, max_concurrency: int = 4, max_wait: float = 60.0) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.max_wait = max_wait
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._paused_until: float | None = None
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def paused(self) -> bool:
        return self._paused_until is not None and time.monotonic() < self._paused_until

    def pause(self, seconds: float) -> None:
        """Close the gate for ``seconds``; extends but never shortens a pause."""
        if seconds <= 0:
            return
        until = time.monotonic() + seconds
        if self._paused_until is None or until > self._paused_until:
            self._paused_until = until
            logger.info("admission_paused", extra={"seconds": round(seconds, 3)})

    def resume(self) -> None:
        """Reopen the gate immediately (load signal cleared)."""
        if self._paused_until is not None:
            self._paused_until = None
            logger.info("admission_resumed")

    async def wait_open(self) -> None:
        """Block while paused, at most ``max_wait`` seconds."""
        deadline = time.monotonic() + self.max_wait
        while self._paused_until is not None:
            now = time.monotonic()
            if now >= self._paused_until:
                self._paused_until = None
                break
            if now >= deadline:
                logger.warning("admission_wait_timeout", extra={"max_wait": self.max_wait})
                break
            await asyncio.sleep(min(self._paused_until, deadline) - now)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one in-flight slot for the duration of the block."""
        await self.wait_open()
        async with self._semaphore:
            self._in_flight += 1
            try:
                yield
            finally:
                self._in_flight -= 1
