"""Typed parameter bundles for the actions the client itself issues.

Each builder returns a ``LogicalRequest`` with the method and token hints
already set; this module never talks to the network. The full parameter
catalogue of the action API is deliberately not modelled here.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .core.enums import RequestMethod, TokenKind
from .core.request import FilePayload, LogicalRequest


def query(**params: Any) -> LogicalRequest:
    """Generic ``action=query`` read."""
    return LogicalRequest.create("query", params)


def tokens(kind: TokenKind) -> LogicalRequest:
    """``meta=tokens`` for one token kind."""
    return LogicalRequest.create("query", meta="tokens", type=TokenKind(kind).value)


def login(username: str, password: str) -> LogicalRequest:
    """``action=login`` with a bot password; the login token is attached by the executor."""
    return LogicalRequest.create(
        "login",
        lgname=username,
        lgpassword=password,
        method=RequestMethod.WRITE,
        token=TokenKind.LOGIN,
    )


def userinfo(props: Iterable[str] = ("rights",)) -> LogicalRequest:
    """``meta=userinfo`` for the logged-in user."""
    return LogicalRequest.create("query", meta="userinfo", uiprop=list(props))


def page_content(title: str | None = None, pageid: int | None = None) -> LogicalRequest:
    """Latest revision of the main slot for one page, by title or id."""
    if (title is None) == (pageid is None):
        raise ValueError("pass exactly one of title or pageid")
    return LogicalRequest.create(
        "query",
        prop="revisions",
        rvprop=["ids", "content"],
        rvslots="main",
        rvlimit=1,
        titles=title,
        pageids=pageid,
    )


def edit(
    title: str,
    text: str,
    summary: str = "",
    *,
    baserevid: int | None = None,
    minor: bool = False,
    bot: bool = True,
) -> LogicalRequest:
    """Replace the text of ``title``.

    ``baserevid`` lets the server detect edit conflicts against the
    revision the caller read.
    """
    return LogicalRequest.create(
        "edit",
        title=title,
        text=text,
        summary=summary,
        baserevid=baserevid,
        minor=minor,
        bot=bot,
        method=RequestMethod.WRITE,
        token=TokenKind.CSRF,
    )


def upload(
    filename: str,
    payload: bytes,
    comment: str = "",
    text: str | None = None,
    *,
    content_type: str = "application/octet-stream",
    ignorewarnings: bool = False,
) -> LogicalRequest:
    """Multipart file upload."""
    return LogicalRequest.create(
        "upload",
        filename=filename,
        comment=comment,
        text=text,
        ignorewarnings=ignorewarnings,
        file=FilePayload(filename=filename, content=payload, content_type=content_type),
        method=RequestMethod.WRITE,
        token=TokenKind.CSRF,
    )


def search(term: str, *, namespace: int | Iterable[int] = 0, limit: int | str = "max") -> LogicalRequest:
    """``list=search`` full-text search."""
    return LogicalRequest.create(
        "query", list="search", srsearch=term, srnamespace=namespace, srlimit=limit
    )


def recent_changes(
    *,
    namespace: int | Iterable[int] | None = None,
    start: str | None = None,
    end: str | None = None,
    props: Iterable[str] = ("title", "ids", "timestamp", "user", "comment", "sizes"),
    types: Iterable[str] | None = None,
    limit: int | str = "max",
) -> LogicalRequest:
    """``list=recentchanges``; timestamps are ISO-8601 strings."""
    return LogicalRequest.create(
        "query",
        list="recentchanges",
        rcnamespace=namespace,
        rcstart=start,
        rcend=end,
        rcprop=list(props),
        rctype=list(types) if types is not None else None,
        rclimit=limit,
    )


def category_members(
    title: str,
    *,
    member_types: Iterable[str] = ("page", "subcat", "file"),
    limit: int | str = "max",
) -> LogicalRequest:
    """``list=categorymembers``; ``title`` is prefixed with ``Category:`` if needed."""
    if not title.startswith("Category:"):
        title = f"Category:{title}"
    return LogicalRequest.create(
        "query",
        list="categorymembers",
        cmtitle=title,
        cmtype=list(member_types),
        cmlimit=limit,
    )


def all_pages(*, namespace: int = 0, prefix: str | None = None, limit: int | str = "max") -> LogicalRequest:
    """``list=allpages`` for one namespace."""
    return LogicalRequest.create(
        "query", list="allpages", apnamespace=namespace, apprefix=prefix, aplimit=limit
    )
