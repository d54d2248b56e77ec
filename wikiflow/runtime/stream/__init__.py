"""Server-sent event stream runtime."""

from .consumer import ChangeStreamConsumer, StateListener
from .sse import SSEDecoder

__all__ = [
    "ChangeStreamConsumer",
    "SSEDecoder",
    "StateListener",
]
