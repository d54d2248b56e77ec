"""Engine configuration.

Plain dataclasses; loading them from files or the environment is left to
the embedding application.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from .constants import DEFAULT_USER_AGENT, EVENTSTREAMS_BASE_URL, RECENT_CHANGE_STREAM


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff schedule shared by throttle and transport retries.

    Attributes:
        max_attempts: Total attempts for one logical call (first try included)
        base_delay: Delay before the second attempt (seconds)
        multiplier: Growth factor between consecutive delays
        max_delay: Cap applied before jitter
        jitter: +/- fraction applied to each delay to avoid thundering herds
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.2

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.base_delay * (self.multiplier ** max(attempt - 1, 0)), self.max_delay)
        if self.jitter:
            delay *= random.uniform(1 - self.jitter, 1 + self.jitter)
        return max(0.0, delay)


@dataclass(frozen=True)
class BotPassword:
    """Bot password credentials (``User@BotName`` + generated password)."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for one API endpoint.

    Attributes:
        api_url: Full URL of ``api.php``
        user_agent: Identification string sent with every request
        credentials: Optional bot password used by ``WikiClient.login``
        max_concurrency: Requests allowed in flight at once
        maxlag: Value of the ``maxlag`` parameter; None disables it
        timeout: Per-request timeout in seconds
        get_size_threshold: Longest encoded query sent as GET
        admission_timeout: Longest a request waits for a throttle pause to clear
        edit_delay: Minimum seconds between two edits from this client
        retry: Backoff schedule
    """

    api_url: str
    user_agent: str = DEFAULT_USER_AGENT
    credentials: BotPassword | None = None
    max_concurrency: int = 4
    maxlag: int | None = 5
    timeout: float = 30.0
    get_size_threshold: int = 2000
    admission_timeout: float = 60.0
    edit_delay: float = 0.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if not self.api_url.startswith(("http://", "https://")):
            raise ValueError(f"api_url must be an http(s) URL: {self.api_url!r}")
        if "?" in self.api_url:
            raise ValueError("api_url must not carry a query string")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for a change-stream subscription.

    Attributes:
        url: Full stream URL
        heartbeat_timeout: Silence after which a connection counts as stalled
        connect_timeout: Timeout for establishing the connection
        base_reconnect_delay: First reconnect delay
        max_reconnect_delay: Cap on reconnect delay
        jitter: +/- fraction applied to reconnect delays
        sustained_delivery: Seconds of delivery after which backoff resets
        max_reconnect_attempts: Consecutive failed connects before giving up;
            None retries forever
        user_agent: Identification string
    """

    url: str = f"{EVENTSTREAMS_BASE_URL}/{RECENT_CHANGE_STREAM}"
    heartbeat_timeout: float = 30.0
    connect_timeout: float = 15.0
    base_reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    jitter: float = 0.2
    sustained_delivery: float = 60.0
    max_reconnect_attempts: int | None = 10
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def for_stream(cls, name: str, **kwargs) -> StreamConfig:
        """Config for a named Wikimedia EventStreams stream."""
        return cls(url=f"{EVENTSTREAMS_BASE_URL}/{name}", **kwargs)

    @property
    def stream_id(self) -> str:
        """Last path segment of the stream URL."""
        return self.url.rstrip("/").rsplit("/", 1)[-1]
