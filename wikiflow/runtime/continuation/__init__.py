"""Continuation (multi-page query) runtime."""

from .definitions import PaginationPolicy, PaginationResult
from .engine import ContinuationEngine, PaginationSession, query_list

__all__ = [
    "ContinuationEngine",
    "PaginationPolicy",
    "PaginationResult",
    "PaginationSession",
    "query_list",
]
