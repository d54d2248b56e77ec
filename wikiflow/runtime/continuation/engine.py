"""Continuation engine: drives a multi-page query to completion.

Each page request is the caller's original request with the latest
``continue`` block merged over it (server values win). Pages are strictly
sequential; a session's state is replaced after every page so callers can
persist it and resume later from exactly that point.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import AsyncIterator, Callable
from time import perf_counter
from typing import Any

from ...core.exceptions import ProtocolError
from ...core.request import LogicalRequest
from ...models.continuation import ContinuationState
from ...models.response import ApiResponse
from ...utils.merge import merge_values
from ..rest.executor import RequestExecutor
from .definitions import PaginationPolicy, PaginationResult
from .telemetry import log_page_fetched, log_pagination_complete, log_pagination_error

logger = logging.getLogger(__name__)


class PaginationSession:
    """One sequential walk over a paginated result.

    Iterate it with ``async for``; read ``state`` at any point for the
    position after the last fully processed page.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        request: LogicalRequest,
        state: ContinuationState | None = None,
        policy: PaginationPolicy | None = None,
    ) -> None:
        self._executor = executor
        self._request = request
        self._state = state or ContinuationState()
        self._policy = policy or PaginationPolicy()
        self._started = False

    @property
    def request(self) -> LogicalRequest:
        """The caller's original request."""
        return self._request

    @property
    def state(self) -> ContinuationState:
        return self._state

    def next_request(self) -> LogicalRequest | None:
        """Request for the next page, or None when the session is exhausted."""
        if self._state.exhausted:
            return None
        if self._state.descriptor is None:
            return self._request
        return self._request.with_params(self._state.descriptor)

    def __aiter__(self) -> AsyncIterator[ApiResponse]:
        if self._started:
            raise RuntimeError("a pagination session can only be iterated once")
        self._started = True
        return self._run()

    async def _run(self) -> AsyncIterator[ApiResponse]:
        action = self._request.action
        session_start = perf_counter()
        fetched = 0

        while True:
            request = self.next_request()
            if request is None:
                break
            if self._policy.max_pages is not None and fetched >= self._policy.max_pages:
                break

            page_start = perf_counter()
            try:
                response = await self._executor.execute(request)
                descriptor = response.continuation
                if descriptor is not None and descriptor == self._state.descriptor:
                    raise ProtocolError(
                        f"{action} returned the same continuation twice: {descriptor!r}"
                    )
            except Exception as e:
                log_pagination_error(
                    action=action,
                    state=self._state,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                raise

            self._state = self._state.advance(descriptor)
            fetched += 1
            log_page_fetched(
                action=action,
                page=self._state.page,
                has_more=descriptor is not None,
                latency_ms=(perf_counter() - page_start) * 1000.0,
            )
            yield response

        log_pagination_complete(
            action=action,
            state=self._state,
            total_latency_ms=(perf_counter() - session_start) * 1000.0,
        )


class ContinuationEngine:
    """Creates pagination sessions over a request executor.

    Sessions are independent of each other and may run concurrently.
    """

    def __init__(self, executor: RequestExecutor, policy: PaginationPolicy | None = None) -> None:
        self._executor = executor
        self._policy = policy or PaginationPolicy()

    def paginate(
        self,
        request: LogicalRequest,
        state: ContinuationState | None = None,
        *,
        policy: PaginationPolicy | None = None,
    ) -> PaginationSession:
        """Lazy sequence of pages, optionally resumed from ``state``."""
        return PaginationSession(self._executor, request, state, policy or self._policy)

    async def collect(
        self,
        request: LogicalRequest,
        state: ContinuationState | None = None,
        *,
        policy: PaginationPolicy | None = None,
    ) -> PaginationResult:
        """Fold every page into one body.

        The ``continue`` and ``batchcomplete`` keys are dropped from the
        merged body since they only describe individual pages.
        """
        session = self.paginate(request, state, policy=policy)
        merged: dict[str, Any] = {}
        warnings: list[str] = []
        pages = 0
        async for response in session:
            body = {k: v for k, v in response.body.items() if k not in ("continue", "batchcomplete")}
            merge_values(merged, copy.deepcopy(body))
            warnings.extend(response.warnings)
            pages += 1
        return PaginationResult(data=merged, pages=pages, state=session.state, warnings=warnings)

    async def iter_items(
        self,
        request: LogicalRequest,
        extract: Callable[[ApiResponse], list[Any]],
        state: ContinuationState | None = None,
    ) -> AsyncIterator[Any]:
        """Yield the items ``extract`` pulls out of each page, in order."""
        async for response in self.paginate(request, state):
            for item in extract(response):
                yield item


def query_list(name: str) -> Callable[[ApiResponse], list[Any]]:
    """Extractor for ``query.<name>`` lists (``search``, ``categorymembers``...)."""

    def extract(response: ApiResponse) -> list[Any]:
        items = response.query.get(name, [])
        if not isinstance(items, list):
            raise ProtocolError(f"query.{name} is not a list: {items!r}")
        return items

    return extract
