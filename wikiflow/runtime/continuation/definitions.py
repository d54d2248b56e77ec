"""Pagination policy and result structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...models.continuation import ContinuationState


@dataclass(frozen=True)
class PaginationPolicy:
    """Limits for one pagination session.

    Attributes:
        max_pages: Stop after this many pages (None = follow the server)
    """

    max_pages: int | None = None

    def __post_init__(self) -> None:
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")


@dataclass
class PaginationResult:
    """Result of folding every page of a session into one body.

    Attributes:
        data: Merged response body (objects merged, arrays concatenated)
        pages: Number of pages fetched in this call
        state: State after the last page, for resumption
        warnings: Warnings collected from every page
    """

    data: dict[str, Any]
    pages: int
    state: ContinuationState
    warnings: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.state.exhausted
