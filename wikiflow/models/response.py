"""Decoded API response and derived load signal."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import LoadLevel
from ..core.exceptions import ProtocolError


class RateSignal(BaseModel):
    """Server load derived from one response; never persisted."""

    level: LoadLevel = LoadLevel.NORMAL
    lag: float = Field(default=0.0, ge=0)
    retry_after: float | None = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def throttled(self) -> bool:
        return self.level is LoadLevel.THROTTLED

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> RateSignal:
        """Read ``Retry-After`` and ``X-Database-Lag`` headers."""
        if not headers:
            return cls()
        retry_after = _parse_seconds(headers.get("Retry-After"))
        lag = _parse_seconds(headers.get("X-Database-Lag")) or 0.0
        level = LoadLevel.THROTTLED if retry_after is not None else LoadLevel.NORMAL
        return cls(level=level, lag=lag, retry_after=retry_after)


def _parse_seconds(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        # HTTP-date form of Retry-After is not used by MediaWiki
        return None
    return seconds if seconds >= 0 else None


class ApiResponse(BaseModel):
    """One decoded action API response.

    Attributes:
        body: Full decoded JSON object
        warnings: Non-fatal warnings, one string per module message
        continuation: The ``continue`` block, if the result has more pages
        error: The ``error`` block, if the call failed
        rate: Load signal read from the response headers
    """

    body: dict[str, Any] = Field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    continuation: dict[str, str] | None = None
    error: dict[str, Any] | None = None
    rate: RateSignal = Field(default_factory=RateSignal)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(
        cls, payload: Any, headers: Mapping[str, str] | None = None
    ) -> ApiResponse:
        """Split a decoded JSON body into its protocol parts."""
        if not isinstance(payload, dict):
            raise ProtocolError(f"expected a JSON object, got {type(payload).__name__}")

        continuation = payload.get("continue")
        if continuation is not None:
            if not isinstance(continuation, dict):
                raise ProtocolError(f"malformed continue block: {continuation!r}")
            continuation = {str(k): str(v) for k, v in continuation.items()}

        error = payload.get("error")
        if error is None and isinstance(payload.get("errors"), list) and payload["errors"]:
            # errorformat other than bc returns a list
            error = payload["errors"][0]

        return cls(
            body=payload,
            warnings=tuple(_collect_warnings(payload.get("warnings"))),
            continuation=continuation,
            error=error,
            rate=RateSignal.from_headers(headers),
        )

    @property
    def error_code(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error.get("code", "unknown"))

    @property
    def error_info(self) -> str:
        if self.error is None:
            return ""
        for key in ("info", "text", "*"):
            if key in self.error:
                return str(self.error[key])
        return ""

    @property
    def query(self) -> dict[str, Any]:
        """The ``query`` block, empty if absent."""
        return self.body.get("query") or {}


def _collect_warnings(raw: Any) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(w.get("text", w.get("code", w))) if isinstance(w, dict) else str(w) for w in raw]
    out: list[str] = []
    if isinstance(raw, dict):
        for module, value in raw.items():
            if isinstance(value, dict):
                text = value.get("warnings", value.get("*", ""))
            else:
                text = value
            for line in str(text).splitlines():
                if line:
                    out.append(f"{module}: {line}")
    return out
