"""Action API transport.

Turns a ``LogicalRequest`` into one HTTP exchange and the answer into an
``ApiResponse``, translating every failure into the library's taxonomy:

    HTTP 429, maxlag/ratelimited/readonly   -> ThrottleError
    badtoken/notoken                        -> InvalidTokenError
    connection errors, 5xx                  -> NetworkError
    timeouts                                -> RequestTimeoutError
    any other API error                     -> SemanticApiError
    2xx body that is not a JSON object      -> ProtocolError
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import aiohttp

from ...core.constants import RETRYABLE_HTTP_STATUSES, THROTTLE_CODES, THROTTLE_HTTP_STATUSES, TOKEN_CODES
from ...core.enums import RequestMethod
from ...core.exceptions import (
    InvalidTokenError,
    NetworkError,
    ProtocolError,
    SemanticApiError,
    ThrottleError,
)
from ...core.request import FilePayload, LogicalRequest, ParamValue
from ...models.response import ApiResponse, RateSignal
from .http_client import HTTPClient, HTTPResponse

logger = logging.getLogger(__name__)


class ApiTransport:
    """Sends logical requests to one ``api.php`` endpoint."""

    def __init__(
        self,
        http: HTTPClient,
        api_url: str,
        *,
        maxlag: int | None = 5,
        get_size_threshold: int = 2000,
    ) -> None:
        self._http = http
        self.api_url = api_url
        self.maxlag = maxlag
        self.get_size_threshold = get_size_threshold

    @property
    def http(self) -> HTTPClient:
        return self._http

    def wire_params(self, request: LogicalRequest) -> dict[str, ParamValue]:
        """Request parameters plus the format and load-limit parameters."""
        params: dict[str, ParamValue] = request.to_wire()
        params.setdefault("format", "json")
        params.setdefault("formatversion", "2")
        if self.maxlag is not None:
            params.setdefault("maxlag", str(self.maxlag))
        return params

    def choose_method(self, request: LogicalRequest, params: dict[str, ParamValue]) -> str:
        """``GET``, ``POST`` or ``MULTIPART`` for this request."""
        if request.has_files:
            return "MULTIPART"
        if request.method is RequestMethod.WRITE:
            return "POST"
        if len(urlencode(params)) > self.get_size_threshold:
            return "POST"
        return "GET"

    async def send(self, request: LogicalRequest) -> ApiResponse:
        """Execute exactly one exchange, no retries."""
        params = self.wire_params(request)
        shape = self.choose_method(request, params)
        logger.debug("api_request", extra={"action": request.action, "shape": shape})

        if shape == "GET":
            http_response = await self._http.get(self.api_url, params=params)
        elif shape == "POST":
            http_response = await self._http.post(self.api_url, data=params)
        else:
            http_response = await self._http.post(self.api_url, data=build_multipart(params))

        return self.interpret(request, http_response)

    def interpret(self, request: LogicalRequest, http_response: HTTPResponse) -> ApiResponse:
        """Classify an HTTP exchange; return the response or raise."""
        status = http_response.status
        payload = http_response.payload
        signal = RateSignal.from_headers(http_response.headers)

        if isinstance(payload, dict) and ("error" in payload or "errors" in payload):
            response = ApiResponse.from_payload(payload, http_response.headers)
            raise classify_api_error(request, response)

        if status in THROTTLE_HTTP_STATUSES or (status == 503 and signal.retry_after is not None):
            raise ThrottleError(
                f"HTTP {status} from {self.api_url}", retry_after=signal.retry_after, code=str(status)
            )
        if status in RETRYABLE_HTTP_STATUSES or status >= 500:
            raise NetworkError(f"HTTP {status} from {self.api_url}", status_code=status)
        if status >= 400:
            raise SemanticApiError(f"http-{status}", http_response.text[:200] or f"HTTP {status}")
        if not isinstance(payload, dict):
            raise ProtocolError(
                f"{request.action} returned a non-object body (HTTP {status}): "
                f"{http_response.text[:200]!r}"
            )

        response = ApiResponse.from_payload(payload, http_response.headers)
        for warning in response.warnings:
            logger.warning("api_warning", extra={"action": request.action, "warning": warning})
        return response


def classify_api_error(request: LogicalRequest, response: ApiResponse) -> Exception:
    """Map an ``error`` block to the matching exception."""
    code = response.error_code or "unknown"
    info = response.error_info
    if code in THROTTLE_CODES:
        lag = response.error.get("lag") if response.error else None
        return ThrottleError(
            f"{code}: {info}",
            retry_after=response.rate.retry_after,
            lag=float(lag) if lag is not None else None,
            code=code,
        )
    if code in TOKEN_CODES:
        return InvalidTokenError(f"{code}: {info}", kind=request.token.value, code=code)
    return SemanticApiError(code, info, dict(response.error or {}))


def build_multipart(params: dict[str, Any]) -> aiohttp.FormData:
    """Multipart body: text fields as-is, bytes and files as file parts."""
    form = aiohttp.FormData()
    for name, value in params.items():
        if isinstance(value, FilePayload):
            form.add_field(name, value.content, filename=value.filename, content_type=value.content_type)
        elif isinstance(value, bytes):
            form.add_field(name, value, filename=name, content_type="application/octet-stream")
        else:
            form.add_field(name, value)
    return form
