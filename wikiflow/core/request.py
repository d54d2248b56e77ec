"""Immutable logical request model.

A ``LogicalRequest`` is what callers hand to the engine: an action name, an
ordered parameter mapping and two hints (read vs. write, which token the call
needs). The engine never mutates one; continuation and token refresh derive
new instances with ``with_params`` / ``with_token``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

from ..utils.multivalue import encode_multivalue
from .enums import RequestMethod, TokenKind


@dataclass(frozen=True)
class FilePayload:
    """File content sent as a multipart part."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


ParamValue = Union[str, bytes, FilePayload]


def normalize_value(value: Any) -> ParamValue | None:
    """Coerce a caller-supplied value into the wire representation.

    ``None`` and ``False`` drop the parameter (the API treats presence as
    true), ``True`` becomes an empty flag, sequences are multi-value encoded.
    """
    if value is None or value is False:
        return None
    if value is True:
        return ""
    if isinstance(value, (str, bytes, FilePayload)):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Iterable):
        return encode_multivalue(value)
    return str(value)


def _normalize(params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> dict[str, ParamValue]:
    items = params.items() if isinstance(params, Mapping) else params
    out: dict[str, ParamValue] = {}
    for key, value in items:
        normalized = normalize_value(value)
        if normalized is None:
            out.pop(key, None)
        else:
            out[key] = normalized
    return out


@dataclass(frozen=True)
class LogicalRequest:
    """One API call as the caller means it.

    Attributes:
        action: API action name (``query``, ``edit``, ...)
        params: Ordered parameter mapping, read-only
        method: READ requests may be sent as GET; WRITE always POSTs
        token: Token kind the call needs; NONE if it needs none
    """

    action: str
    params: Mapping[str, ParamValue] = field(default_factory=dict)
    method: RequestMethod = RequestMethod.READ
    token: TokenKind = TokenKind.NONE

    def __post_init__(self) -> None:
        if not self.action:
            raise ValueError("action must be a non-empty string")
        if "action" in self.params:
            raise ValueError("action is set through LogicalRequest.action, not params")
        object.__setattr__(self, "params", MappingProxyType(_normalize(self.params)))

    @classmethod
    def create(
        cls,
        action: str,
        params: Mapping[str, Any] | None = None,
        *,
        method: RequestMethod = RequestMethod.READ,
        token: TokenKind = TokenKind.NONE,
        **kwargs: Any,
    ) -> LogicalRequest:
        """Build a request from loose values (ints, lists, bools, None)."""
        merged: dict[str, Any] = dict(params or {})
        merged.update(kwargs)
        return cls(action=action, params=merged, method=method, token=token)

    @property
    def has_files(self) -> bool:
        """True when any parameter needs multipart encoding."""
        return any(isinstance(v, (bytes, FilePayload)) for v in self.params.values())

    def with_params(self, updates: Mapping[str, Any]) -> LogicalRequest:
        """Return a copy with ``updates`` merged over the current params.

        New keys are appended, shared keys overwritten in place (their
        original position is kept).
        """
        merged: dict[str, Any] = dict(self.params)
        merged.update(updates)
        return LogicalRequest(
            action=self.action, params=merged, method=self.method, token=self.token
        )

    def with_token(self, value: str) -> LogicalRequest:
        """Return a copy carrying ``value`` as this request's token."""
        if self.token is TokenKind.NONE:
            raise ValueError(f"request for action={self.action} takes no token")
        return self.with_params({self.token.param_name: value})

    def to_wire(self) -> dict[str, ParamValue]:
        """Parameters including ``action``, in order."""
        return {"action": self.action, **self.params}

    def __repr__(self) -> str:
        shown = {
            k: ("<redacted>" if k in _SECRET_PARAMS else v)
            for k, v in self.params.items()
            if not isinstance(v, (bytes, FilePayload))
        }
        return (
            f"LogicalRequest(action={self.action!r}, params={shown!r}, "
            f"method={self.method.value}, token={self.token.value})"
        )


_SECRET_PARAMS = frozenset({"lgpassword", "password", "token", "lgtoken"})
