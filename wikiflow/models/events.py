"""Connection lifecycle events for stream subscriptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from ..core.enums import StreamState


@dataclass(frozen=True)
class ConnectionEvent:
    """State transition of a change-stream subscription."""

    state: StreamState
    stream: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempt: int = 0
    last_event_id: Optional[str] = None
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def transition(
        cls,
        state: StreamState,
        stream: str,
        *,
        attempt: int = 0,
        last_event_id: Optional[str] = None,
        error: Optional[BaseException] = None,
        **metadata: Any,
    ) -> ConnectionEvent:
        """Create an event for entering ``state``."""
        return cls(
            state=state,
            stream=stream,
            attempt=attempt,
            last_event_id=last_event_id,
            error=f"{type(error).__name__}: {error}" if error else None,
            metadata=metadata,
        )
