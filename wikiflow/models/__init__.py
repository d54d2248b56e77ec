"""Data models.

Architecture:
    Pydantic v2 models. Value objects handed to callers are frozen; the
    engine's own state objects (ContinuationState, StreamCheckpoint) are
    frozen as well and replaced wholesale on every step, so a snapshot the
    caller keeps for persistence never changes under it. Token is the one
    mutable model: the cache flips its validity flag in place.

Model Categories:
    - API: ApiResponse, RateSignal, Page
    - Auth: Token
    - Pagination: ContinuationState
    - Streaming: ConnectionEvent, StreamCheckpoint, StreamEvent, RecentChangeEvent,
      RevisionScoreEvent
"""

from .continuation import ContinuationState
from .events import ConnectionEvent
from .page import Page
from .response import ApiResponse, RateSignal
from .stream import (
    EventMeta,
    OldNew,
    OresScores,
    RecentChangeEvent,
    RevisionScoreEvent,
    StreamCheckpoint,
    StreamEvent,
)
from .token import Token

__all__ = [
    "ApiResponse",
    "RateSignal",
    "Page",
    "Token",
    "ContinuationState",
    "ConnectionEvent",
    "StreamCheckpoint",
    "StreamEvent",
    "EventMeta",
    "OldNew",
    "OresScores",
    "RecentChangeEvent",
    "RevisionScoreEvent",
]
