"""wikiflow - async orchestration engine for MediaWiki action API clients."""

from . import actions
from .client import WikiClient
from .core import (
    BotPassword,
    ClientConfig,
    FilePayload,
    InvalidTokenError,
    LoadLevel,
    LoginError,
    LogicalRequest,
    NetworkError,
    NotLoggedInError,
    ProtocolError,
    RequestMethod,
    RequestTimeoutError,
    RetryExhaustedError,
    RetryPolicy,
    SemanticApiError,
    StreamConfig,
    StreamState,
    SubscriptionError,
    ThrottleError,
    TokenKind,
    WikiError,
)
from .models import (
    ApiResponse,
    ConnectionEvent,
    ContinuationState,
    Page,
    RateSignal,
    RecentChangeEvent,
    RevisionScoreEvent,
    StreamCheckpoint,
    StreamEvent,
    Token,
)
from .runtime import (
    AdmissionGate,
    ApiTransport,
    ChangeStreamConsumer,
    ContinuationEngine,
    HTTPClient,
    PaginationPolicy,
    PaginationResult,
    PaginationSession,
    RequestExecutor,
    SSEDecoder,
    TokenCache,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "actions",
    "WikiClient",
    # Core
    "BotPassword",
    "ClientConfig",
    "RetryPolicy",
    "StreamConfig",
    "FilePayload",
    "LogicalRequest",
    "LoadLevel",
    "RequestMethod",
    "StreamState",
    "TokenKind",
    # Exceptions
    "WikiError",
    "NetworkError",
    "RequestTimeoutError",
    "ThrottleError",
    "InvalidTokenError",
    "SemanticApiError",
    "LoginError",
    "NotLoggedInError",
    "ProtocolError",
    "RetryExhaustedError",
    "SubscriptionError",
    # Models
    "ApiResponse",
    "RateSignal",
    "Page",
    "Token",
    "ContinuationState",
    "ConnectionEvent",
    "StreamCheckpoint",
    "StreamEvent",
    "RecentChangeEvent",
    "RevisionScoreEvent",
    # Runtime
    "AdmissionGate",
    "ApiTransport",
    "HTTPClient",
    "RequestExecutor",
    "TokenCache",
    "ContinuationEngine",
    "PaginationPolicy",
    "PaginationResult",
    "PaginationSession",
    "ChangeStreamConsumer",
    "SSEDecoder",
]
