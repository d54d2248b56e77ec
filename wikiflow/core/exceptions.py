"""Custom exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models.stream import StreamCheckpoint


class WikiError(Exception):
    """Base exception for all library errors."""

    pass


class NetworkError(WikiError):
    """Transport-level failure (connection reset, 5xx, unreadable body).

    Retryable: the request executor retries these on the backoff schedule.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RequestTimeoutError(NetworkError, TimeoutError):
    """A single network operation exceeded its timeout."""

    pass


class ThrottleError(WikiError):
    """Server signalled load (maxlag, ratelimited, 429).

    Attributes:
        retry_after: Explicit wait hint from the server in seconds, if any
        lag: Replication lag reported by a maxlag error, if any
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        lag: float | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.lag = lag
        self.code = code

    @property
    def wait_hint(self) -> float | None:
        """Server-supplied delay; an explicit Retry-After wins over lag."""
        if self.retry_after is not None:
            return self.retry_after
        return self.lag


class InvalidTokenError(WikiError):
    """The server rejected an authorization token."""

    def __init__(self, message: str, kind: str | None = None, code: str = "badtoken") -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code


class SemanticApiError(WikiError):
    """Server-reported API error that is not transient."""

    def __init__(self, code: str, message: str, info: dict[str, Any] | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.info = info or {}


class LoginError(SemanticApiError):
    """Login was rejected by the server."""

    def __init__(self, result: str, reason: str | None = None) -> None:
        super().__init__("login-failed", reason or result, {"result": result})
        self.result = result
        self.reason = reason


class NotLoggedInError(WikiError):
    """A write helper was called on a client without credentials."""

    pass


class ProtocolError(WikiError):
    """Malformed or non-converging data from the server."""

    pass


class RetryExhaustedError(WikiError):
    """Retryable failures persisted past the attempt ceiling."""

    def __init__(self, message: str, last_error: BaseException, attempts: int) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class SubscriptionError(WikiError):
    """Stream subscription could not be re-established.

    The last checkpoint is preserved so a later subscription can resume.
    """

    def __init__(
        self,
        message: str,
        checkpoint: StreamCheckpoint | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.checkpoint = checkpoint
        self.last_error = last_error
