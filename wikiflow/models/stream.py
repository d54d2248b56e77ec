"""Change-stream checkpoint and event models."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import ProtocolError

M = TypeVar("M", bound=BaseModel)


class StreamCheckpoint(BaseModel):
    """Minimal state needed to resume a subscription.

    Attributes:
        stream: Stream identifier (e.g. ``recentchange``)
        last_event_id: Id of the last event handed to the caller
        last_received_at: Wall-clock time that event arrived
    """

    stream: str
    last_event_id: str | None = None
    last_received_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def advance(self, event_id: str, received_at: datetime | None = None) -> StreamCheckpoint:
        return StreamCheckpoint(
            stream=self.stream,
            last_event_id=event_id,
            last_received_at=received_at or datetime.now(UTC),
        )


class StreamEvent(BaseModel):
    """One decoded server-sent event.

    Attributes:
        event: Event type (``message`` when the record names none)
        data: Payload text, multi-line data joined with newlines
        id: Event identifier, the deduplication key downstream
        retry: Reconnection time the server asked for, in milliseconds
    """

    event: str = "message"
    data: str = ""
    id: str | None = None
    retry: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    def payload(self) -> Any:
        """Decode ``data`` as JSON."""
        try:
            return json.loads(self.data)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"event {self.id!r} carries non-JSON data: {e}") from e

    def parse_as(self, model: type[M]) -> M:
        """Validate the JSON payload into ``model``."""
        return model.model_validate(self.payload())


class EventMeta(BaseModel):
    """``meta`` block common to Wikimedia event schemas."""

    dt: datetime
    stream: str
    domain: str | None = None
    request_id: str | None = None
    uri: str | None = None
    id: str | None = None

    model_config = ConfigDict(frozen=True)


class OldNew(BaseModel):
    old: int | None = None
    new: int | None = None

    model_config = ConfigDict(frozen=True)


class RecentChangeEvent(BaseModel):
    """mediawiki/recentchange event."""

    meta: EventMeta
    id: int | None = None
    type: str | None = None
    title: str | None = None
    namespace: int | None = None
    comment: str | None = None
    parsedcomment: str | None = None
    timestamp: int | None = None
    user: str | None = None
    bot: bool = False
    server_url: str | None = None
    server_script_path: str | None = None
    wiki: str | None = None
    minor: bool = False
    patrolled: bool | None = None
    length: OldNew | None = None
    revision: OldNew | None = None
    log_id: int | None = None
    log_type: str | None = None
    log_action: str | None = None
    log_params: Any = None
    log_action_comment: str | None = None

    model_config = ConfigDict(frozen=True)


class OresScores(BaseModel):
    model_name: str
    model_version: str
    prediction: list[str]
    probability: dict[str, float]

    model_config = ConfigDict(frozen=True)


class RevisionScoreEvent(BaseModel):
    """mediawiki/revision/score event."""

    database: str
    meta: EventMeta
    page_id: int = Field(..., gt=0)
    page_title: str
    page_namespace: int
    page_is_redirect: bool
    rev_id: int
    rev_parent_id: int | None = None
    rev_timestamp: datetime
    scores: dict[str, OresScores] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)
