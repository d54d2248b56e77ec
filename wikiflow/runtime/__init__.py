"""Runtime orchestration components."""

from .continuation import ContinuationEngine, PaginationPolicy, PaginationResult, PaginationSession
from .rest import AdmissionGate, ApiTransport, HTTPClient, HTTPResponse, RequestExecutor
from .stream import ChangeStreamConsumer, SSEDecoder
from .tokens import TokenCache, executor_fetcher, token_request

__all__ = [
    "AdmissionGate",
    "ApiTransport",
    "HTTPClient",
    "HTTPResponse",
    "RequestExecutor",
    "TokenCache",
    "executor_fetcher",
    "token_request",
    "ContinuationEngine",
    "PaginationPolicy",
    "PaginationResult",
    "PaginationSession",
    "ChangeStreamConsumer",
    "SSEDecoder",
]
