"""Request executor: one logical API call, retried as the protocol allows.

Retry rules:
    - ThrottleError and NetworkError (timeouts included) share one attempt
      budget, ``RetryPolicy.max_attempts``. The delay before the next attempt
      is the server's wait hint when it gave one, the backoff schedule
      otherwise. Throttling also pauses admission for every other request.
    - InvalidTokenError refreshes the token and retries exactly once; it does
      not consume the attempt budget.
    - Everything else propagates immediately.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...core.config import RetryPolicy
from ...core.enums import TokenKind
from ...core.exceptions import InvalidTokenError, NetworkError, RetryExhaustedError, ThrottleError
from ...core.request import LogicalRequest
from ...models.response import ApiResponse
from .admission import AdmissionGate
from .transport import ApiTransport

if TYPE_CHECKING:
    from ..tokens import TokenCache

logger = logging.getLogger(__name__)

LOGIN_ACTIONS = frozenset({"login", "clientlogin"})


class RequestExecutor:
    """Executes logical requests against one endpoint."""

    def __init__(
        self,
        transport: ApiTransport,
        *,
        retry: RetryPolicy | None = None,
        gate: AdmissionGate | None = None,
        tokens: TokenCache | None = None,
        sleep=asyncio.sleep,
    ) -> None:
        self._transport = transport
        self.retry = retry or RetryPolicy()
        self.gate = gate or AdmissionGate()
        self.tokens = tokens
        self._sleep = sleep

    @property
    def transport(self) -> ApiTransport:
        return self._transport

    @property
    def endpoint(self) -> str:
        return self._transport.api_url

    async def execute(self, request: LogicalRequest) -> ApiResponse:
        """Send ``request`` and return its response.

        Raises:
            RetryExhaustedError: Retryable failures outlasted the budget
            InvalidTokenError: The token was rejected after one refresh
            SemanticApiError: The server rejected the call
            ProtocolError: The server answered with malformed data
        """
        current = await self._with_token(request)
        failures = 0
        refreshed = False

        while True:
            try:
                async with self.gate.slot():
                    response = await self._transport.send(current)
            except InvalidTokenError as e:
                if refreshed or request.token is TokenKind.NONE or self.tokens is None:
                    logger.error(
                        "token_rejected",
                        extra={"action": request.action, "kind": request.token.value, "code": e.code},
                    )
                    raise
                refreshed = True
                logger.warning(
                    "token_refresh", extra={"action": request.action, "kind": request.token.value}
                )
                # only drop the value that was rejected; a concurrent refresh may have replaced it
                rejected = current.params.get(request.token.param_name)
                self.tokens.invalidate(request.token, rejected)
                current = await self._with_token(request)
                continue
            except (ThrottleError, NetworkError) as e:
                failures += 1
                if failures >= self.retry.max_attempts:
                    logger.error(
                        "retries_exhausted",
                        extra={
                            "action": request.action,
                            "attempts": failures,
                            "error_type": type(e).__name__,
                            "error_message": str(e),
                        },
                    )
                    raise RetryExhaustedError(
                        f"{request.action} failed after {failures} attempts: {e}",
                        last_error=e,
                        attempts=failures,
                    ) from e
                delay = self._delay_for(e, failures)
                if isinstance(e, ThrottleError):
                    self.gate.pause(delay)
                logger.warning(
                    "request_retry",
                    extra={
                        "action": request.action,
                        "attempt": failures,
                        "delay": round(delay, 3),
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                await self._sleep(delay)
                continue

            self._observe(request, response)
            return response

    def _delay_for(self, error: Exception, failures: int) -> float:
        if isinstance(error, ThrottleError) and error.wait_hint is not None:
            return error.wait_hint
        return self.retry.delay_for(failures)

    def _observe(self, request: LogicalRequest, response: ApiResponse) -> None:
        """Apply side effects of a successful response."""
        if response.rate.throttled and response.rate.retry_after is not None:
            self.gate.pause(response.rate.retry_after)
        elif self.gate.paused:
            self.gate.resume()

        if request.action in LOGIN_ACTIONS and self.tokens is not None and _login_succeeded(response):
            # Session identity changed; every token issued before is stale
            self.tokens.invalidate_all()

    async def _with_token(self, request: LogicalRequest) -> LogicalRequest:
        if request.token is TokenKind.NONE:
            return request
        if self.tokens is None:
            raise ValueError(f"{request.action} needs a {request.token.value} token but no token cache is set")
        token = await self.tokens.acquire(request.token)
        return request.with_token(token.value)


def _login_succeeded(response: ApiResponse) -> bool:
    login = response.body.get("login")
    if isinstance(login, dict) and login.get("result") == "Success":
        return True
    clientlogin = response.body.get("clientlogin")
    return isinstance(clientlogin, dict) and clientlogin.get("status") == "PASS"
