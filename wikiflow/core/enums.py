"""Enumerations shared across the engine."""

from __future__ import annotations

from enum import Enum


class RequestMethod(str, Enum):
    """Method hint carried by a logical request."""

    READ = "read"
    WRITE = "write"


class TokenKind(str, Enum):
    """Token types accepted by ``action=query&meta=tokens``."""

    NONE = "none"
    CREATE_ACCOUNT = "createaccount"
    CSRF = "csrf"
    DELETE_GLOBAL_ACCOUNT = "deleteglobalaccount"
    LOGIN = "login"
    PATROL = "patrol"
    ROLLBACK = "rollback"
    SET_GLOBAL_ACCOUNT_STATUS = "setglobalaccountstatus"
    USER_RIGHTS = "userrights"
    WATCH = "watch"

    @property
    def response_field(self) -> str:
        """Key holding this token in the ``tokens`` block of a response."""
        return f"{self.value}token"

    @property
    def param_name(self) -> str:
        """Request parameter the token is sent as."""
        if self is TokenKind.LOGIN:
            return "lgtoken"
        return "token"


class LoadLevel(str, Enum):
    """Server-reported load."""

    NORMAL = "normal"
    THROTTLED = "throttled"


class StreamState(str, Enum):
    """Lifecycle states of a change-stream subscription."""

    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    STALLED = "stalled"
    DISCONNECTED = "disconnected"
    BACKOFF = "backoff"
    CLOSED = "closed"
    FAILED = "failed"
