"""Core components."""

from .config import BotPassword, ClientConfig, RetryPolicy, StreamConfig
from .enums import LoadLevel, RequestMethod, StreamState, TokenKind
from .exceptions import (
    InvalidTokenError,
    LoginError,
    NetworkError,
    NotLoggedInError,
    ProtocolError,
    RequestTimeoutError,
    RetryExhaustedError,
    SemanticApiError,
    SubscriptionError,
    ThrottleError,
    WikiError,
)
from .request import FilePayload, LogicalRequest, ParamValue

__all__ = [
    "BotPassword",
    "ClientConfig",
    "RetryPolicy",
    "StreamConfig",
    "LoadLevel",
    "RequestMethod",
    "StreamState",
    "TokenKind",
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
    "FilePayload",
    "LogicalRequest",
    "ParamValue",
]
