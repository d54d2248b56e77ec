"""WikiClient facade.

Wires one endpoint's HTTP session, transport, admission gate, request
executor, token cache and continuation engine together, and offers the
handful of high-level operations a bot needs on top of them.

Example:
    >>> async with WikiClient.enwiki() as wiki:
    ...     page = await wiki.fetch_content("Python (programming language)")
    ...     async for member in wiki.category_members("Physics"):
    ...         print(member["title"])
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Iterable
from typing import Any

from . import actions
from .core.config import BotPassword, ClientConfig, StreamConfig
from .core.constants import (
    ENWIKI_API_URL,
    RECENT_CHANGE_STREAM,
    TEST_MIRAHEZE_API_URL,
    TEST_WIKIPEDIA_API_URL,
)
from .core.exceptions import LoginError, NotLoggedInError, ProtocolError, SemanticApiError
from .core.request import LogicalRequest
from .models.continuation import ContinuationState
from .models.page import Page
from .models.response import ApiResponse
from .runtime.continuation import ContinuationEngine, PaginationPolicy, PaginationResult, PaginationSession
from .runtime.continuation.engine import query_list
from .runtime.rest import AdmissionGate, ApiTransport, HTTPClient, RequestExecutor
from .runtime.stream import ChangeStreamConsumer, StateListener
from .runtime.tokens import TokenCache, executor_fetcher

logger = logging.getLogger(__name__)


class WikiClient:
    """High-level client for one wiki's action API."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        http: HTTPClient | None = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.config = config
        self._owns_http = http is None
        self._http = http or HTTPClient(
            timeout=config.timeout, headers={"User-Agent": config.user_agent}
        )
        self._sleep = sleep

        transport = ApiTransport(
            self._http,
            config.api_url,
            maxlag=config.maxlag,
            get_size_threshold=config.get_size_threshold,
        )
        self.executor = RequestExecutor(
            transport,
            retry=config.retry,
            gate=AdmissionGate(config.max_concurrency, config.admission_timeout),
            sleep=sleep,
        )
        self.tokens = TokenCache(config.api_url, executor_fetcher(self.executor))
        self.executor.tokens = self.tokens
        self.continuation = ContinuationEngine(self.executor)

        self._username: str | None = None
        self.has_apihighlimits = False
        self._edit_lock = asyncio.Lock()
        self._last_edit: float | None = None

    @classmethod
    def for_site(cls, api_url: str, **kwargs: Any) -> WikiClient:
        """Client for any ``api.php`` URL; extra kwargs go to ClientConfig."""
        return cls(ClientConfig(api_url=api_url, **kwargs))

    @classmethod
    def enwiki(cls, **kwargs: Any) -> WikiClient:
        return cls.for_site(ENWIKI_API_URL, **kwargs)

    @classmethod
    def test_wikipedia(cls, **kwargs: Any) -> WikiClient:
        return cls.for_site(TEST_WIKIPEDIA_API_URL, **kwargs)

    @classmethod
    def test_miraheze(cls, **kwargs: Any) -> WikiClient:
        return cls.for_site(TEST_MIRAHEZE_API_URL, **kwargs)

    @property
    def api_url(self) -> str:
        return self.config.api_url

    @property
    def username(self) -> str | None:
        """Name of the logged-in user, None when anonymous."""
        return self._username

    @property
    def logged_in(self) -> bool:
        return self._username is not None

    # Engine operations

    async def execute(self, request: LogicalRequest) -> ApiResponse:
        """Send one logical request through the executor."""
        return await self.executor.execute(request)

    def paginate(
        self,
        request: LogicalRequest,
        state: ContinuationState | None = None,
        *,
        policy: PaginationPolicy | None = None,
    ) -> PaginationSession:
        """Lazy page sequence; see ``ContinuationEngine.paginate``."""
        return self.continuation.paginate(request, state, policy=policy)

    async def query_all(
        self,
        request: LogicalRequest,
        state: ContinuationState | None = None,
        *,
        policy: PaginationPolicy | None = None,
    ) -> PaginationResult:
        """Every page of ``request`` merged into one body."""
        return await self.continuation.collect(request, state, policy=policy)

    # Session

    async def login(self, credentials: BotPassword | None = None) -> str:
        """Log in with a bot password and return the user name.

        Raises:
            LoginError: The server did not answer ``Success``
        """
        credentials = credentials or self.config.credentials
        if credentials is None:
            raise ValueError("no credentials given and none configured")

        response = await self.execute(actions.login(credentials.username, credentials.password))
        result = response.body.get("login")
        if not isinstance(result, dict):
            raise ProtocolError(f"login response lacks a login block: {response.body!r}")
        if result.get("result") != "Success":
            logger.error("login_failed", extra={"user": credentials.username, "result": result.get("result")})
            raise LoginError(str(result.get("result", "unknown")), result.get("reason"))

        self._username = str(result.get("lgusername", credentials.username))
        info = await self.execute(actions.userinfo(("rights",)))
        rights = info.query.get("userinfo", {}).get("rights", [])
        self.has_apihighlimits = "apihighlimits" in rights
        logger.info(
            "login_succeeded",
            extra={"user": self._username, "apihighlimits": self.has_apihighlimits},
        )
        return self._username

    # Reads

    async def fetch_content(self, title: str | None = None, *, pageid: int | None = None) -> Page:
        """Latest revision text of the page's main slot.

        Raises:
            SemanticApiError: The page does not exist or the title is invalid
        """
        response = await self.execute(actions.page_content(title, pageid))
        pages = response.query.get("pages")
        if not isinstance(pages, list) or not pages:
            raise ProtocolError(f"no pages in response: {response.body!r}")
        page = pages[0]
        if page.get("missing"):
            raise SemanticApiError("missingtitle", f"page {title or pageid!r} does not exist")
        if page.get("invalid"):
            raise SemanticApiError("invalidtitle", page.get("invalidreason", f"invalid title {title!r}"))

        revisions = page.get("revisions") or []
        if not revisions:
            raise ProtocolError(f"page {page.get('title')!r} came back without revisions")
        revision = revisions[0]
        main = revision.get("slots", {}).get("main", {})
        return Page(
            id=page["pageid"],
            title=page["title"],
            namespace=page.get("ns", 0),
            latest_revision=revision["revid"],
            content=main.get("content", ""),
            content_model=main.get("contentmodel", "wikitext"),
        )

    async def search(self, term: str, *, namespace: int | Iterable[int] = 0) -> AsyncIterator[dict[str, Any]]:
        async for item in self.continuation.iter_items(
            actions.search(term, namespace=namespace), query_list("search")
        ):
            yield item

    async def recent_changes(self, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        """Items of ``list=recentchanges``; kwargs as ``actions.recent_changes``."""
        async for item in self.continuation.iter_items(
            actions.recent_changes(**kwargs), query_list("recentchanges")
        ):
            yield item

    async def category_members(self, title: str, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        async for item in self.continuation.iter_items(
            actions.category_members(title, **kwargs), query_list("categorymembers")
        ):
            yield item

    async def all_pages(self, namespace: int = 0, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        async for item in self.continuation.iter_items(
            actions.all_pages(namespace=namespace, **kwargs), query_list("allpages")
        ):
            yield item

    # Writes

    def _require_login(self, action: str) -> None:
        if not self.logged_in:
            raise NotLoggedInError(f"{action} requires login()")

    async def _wait_edit_slot(self) -> None:
        """Hold edits at least ``edit_delay`` seconds apart."""
        if self._last_edit is not None and self.config.edit_delay > 0:
            remaining = self.config.edit_delay - (time.monotonic() - self._last_edit)
            if remaining > 0:
                await self._sleep(remaining)

    async def edit(
        self,
        page: str | Page,
        text: str,
        summary: str = "",
        *,
        baserevid: int | None = None,
        minor: bool = False,
    ) -> dict[str, Any]:
        """Save ``text`` as the new content of ``page``; returns the edit result.

        Passing a ``Page`` uses its latest revision as ``baserevid`` so a
        concurrent change is reported as an edit conflict.
        """
        self._require_login("edit")
        if isinstance(page, Page):
            title = page.title
            baserevid = baserevid if baserevid is not None else page.latest_revision
        else:
            title = page

        request = actions.edit(title, text, summary, baserevid=baserevid, minor=minor)
        async with self._edit_lock:
            await self._wait_edit_slot()
            try:
                response = await self.execute(request)
            finally:
                self._last_edit = time.monotonic()

        result = response.body.get("edit")
        if not isinstance(result, dict):
            raise ProtocolError(f"edit response lacks an edit block: {response.body!r}")
        if result.get("result") != "Success":
            raise SemanticApiError("edit-failed", str(result.get("result")), result)
        logger.info("page_edited", extra={"title": title, "newrevid": result.get("newrevid")})
        return result

    async def upload(
        self,
        filename: str,
        payload: bytes,
        comment: str = "",
        text: str | None = None,
        *,
        ignorewarnings: bool = False,
    ) -> dict[str, Any]:
        """Upload ``payload`` as ``File:<filename>``; returns the upload result."""
        self._require_login("upload")
        response = await self.execute(
            actions.upload(filename, payload, comment, text, ignorewarnings=ignorewarnings)
        )
        result = response.body.get("upload")
        if not isinstance(result, dict):
            raise ProtocolError(f"upload response lacks an upload block: {response.body!r}")
        if result.get("result") != "Success":
            raise SemanticApiError("upload-failed", str(result.get("result")), result)
        logger.info("file_uploaded", extra={"upload_name": filename, "size": len(payload)})
        return result

    # Streams

    def stream(
        self,
        name: str = RECENT_CHANGE_STREAM,
        *,
        on_state_change: StateListener | None = None,
        **kwargs: Any,
    ) -> ChangeStreamConsumer:
        """Consumer for a Wikimedia EventStreams stream; kwargs go to StreamConfig."""
        kwargs.setdefault("user_agent", self.config.user_agent)
        return ChangeStreamConsumer(
            StreamConfig.for_stream(name, **kwargs), on_state_change=on_state_change
        )

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_http:
            await self._http.close()

    async def __aenter__(self) -> WikiClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
