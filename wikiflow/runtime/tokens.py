"""Token cache with single-flight fetching.

Tokens are cached per (endpoint, kind). On a miss, the first caller starts a
fetch task and parks it under the key; callers arriving while it runs await
that task instead of fetching again, so they all see the same token or the
same exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..actions import tokens as token_request
from ..core.enums import TokenKind
from ..core.exceptions import ProtocolError
from ..models.token import Token

if TYPE_CHECKING:
    from .rest.executor import RequestExecutor

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[TokenKind], Awaitable[Token]]
CacheKey = tuple[str, TokenKind]


class TokenCache:
    """Issues, caches and invalidates tokens for one endpoint.

    Every invalidation bumps a per-key generation. A fetch only stores its
    token if the generation it started under is still current, and callers
    whose fetch went stale start over, so a token issued before a login can
    never be cached or handed out after it.
    """

    def __init__(self, endpoint: str, fetch: TokenFetcher) -> None:
        self.endpoint = endpoint
        self._fetch = fetch
        self._tokens: dict[CacheKey, Token] = {}
        self._inflight: dict[CacheKey, asyncio.Future[Token]] = {}
        self._generations: dict[CacheKey, int] = {}
        # Number of fetches started, for diagnostics
        self.fetch_count = 0

    def _key(self, kind: TokenKind) -> CacheKey:
        return (self.endpoint, TokenKind(kind))

    def peek(self, kind: TokenKind) -> Token | None:
        """Cached token for ``kind`` if it is still valid."""
        token = self._tokens.get(self._key(kind))
        if token is not None and token.valid:
            return token
        return None

    async def acquire(self, kind: TokenKind) -> Token:
        """Return a valid token, fetching at most once per key concurrently."""
        if kind is TokenKind.NONE:
            raise ValueError("TokenKind.NONE cannot be acquired")
        key = self._key(kind)

        while True:
            cached = self.peek(kind)
            if cached is not None:
                return cached

            generation = self._generations.get(key, 0)
            task = self._inflight.get(key)
            if task is None:
                self.fetch_count += 1
                logger.debug("token_fetch", extra={"endpoint": self.endpoint, "kind": key[1].value})
                task = asyncio.ensure_future(self._run_fetch(key, generation))
                self._inflight[key] = task
            # shield: a cancelled waiter must not cancel the fetch the others share
            token = await asyncio.shield(task)
            if self._generations.get(key, 0) == generation:
                return token
            logger.debug("token_fetch_stale", extra={"endpoint": self.endpoint, "kind": key[1].value})

    async def _run_fetch(self, key: CacheKey, generation: int) -> Token:
        this = asyncio.current_task()
        try:
            token = await self._fetch(key[1])
            if self._generations.get(key, 0) == generation:
                self._tokens[key] = token
            else:
                token.invalidate()
            return token
        finally:
            if self._inflight.get(key) is this:
                del self._inflight[key]

    def invalidate(self, kind: TokenKind, value: str | None = None) -> None:
        """Flag the cached token for ``kind`` invalid; next acquire refetches.

        With ``value``, only a cached token carrying that value is dropped;
        a token that already replaced it stays.
        """
        key = self._key(kind)
        cached = self._tokens.get(key)
        if value is not None and (cached is None or cached.value != value):
            return
        self._generations[key] = self._generations.get(key, 0) + 1
        self._inflight.pop(key, None)
        token = self._tokens.pop(key, None)
        if token is not None:
            token.invalidate()
            logger.debug("token_invalidated", extra={"endpoint": self.endpoint, "kind": token.kind.value})

    def invalidate_all(self) -> None:
        """Invalidate every token for this endpoint, including fetches in flight (after a login)."""
        keys = {key for key in self._tokens if key[0] == self.endpoint}
        keys.update(key for key in self._inflight if key[0] == self.endpoint)
        for key in keys:
            self.invalidate(key[1])


def executor_fetcher(executor: RequestExecutor) -> TokenFetcher:
    """Fetcher issuing token queries through ``executor``."""

    async def fetch(kind: TokenKind) -> Token:
        response = await executor.execute(token_request(kind))
        tokens = response.query.get("tokens")
        if not isinstance(tokens, dict) or not tokens.get(kind.response_field):
            raise ProtocolError(f"token response lacks {kind.response_field}: {response.body!r}")
        return Token(kind=kind, value=tokens[kind.response_field])

    return fetch
