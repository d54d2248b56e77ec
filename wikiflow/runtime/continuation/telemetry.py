"""Structured logging for pagination sessions.

Records carry the event name as message and the fields in ``extra``.
"""

from __future__ import annotations

import logging

from ...models.continuation import ContinuationState

logger = logging.getLogger(__name__)


def log_page_fetched(
    *,
    action: str,
    page: int,
    has_more: bool,
    latency_ms: float | None = None,
) -> None:
    """Log one processed page.

    Args:
        action: API action of the session
        page: One-based page number
        has_more: Whether the server offered a continuation
        latency_ms: Time spent fetching this page
    """
    logger.debug(
        "page_fetched",
        extra={
            "action": action,
            "page": page,
            "has_more": has_more,
            "latency_ms": latency_ms,
        },
    )


def log_pagination_complete(
    *,
    action: str,
    state: ContinuationState,
    total_latency_ms: float | None = None,
) -> None:
    """Log the end of a session (exhausted or stopped by policy)."""
    logger.info(
        "pagination_complete",
        extra={
            "action": action,
            "pages": state.page,
            "exhausted": state.exhausted,
            "total_latency_ms": total_latency_ms,
        },
    )


def log_pagination_error(
    *,
    action: str,
    state: ContinuationState,
    error_type: str,
    error_message: str,
) -> None:
    """Log a failed session; ``state`` is where a resume would start."""
    logger.error(
        "pagination_error",
        extra={
            "action": action,
            "pages": state.page,
            "descriptor": state.descriptor,
            "error_type": error_type,
            "error_message": error_message,
        },
    )
