"""Request pipeline: the ordered stages every outgoing request passes through.

    authenticate -> dispatch -> normalise -> retry (back to authenticate)

`authenticate` reads the token and, when it is missing or about to expire,
waits on the shared refresh. `dispatch` hands the request to the transport.
`normalise` turns any failure into an `ApiError`. `retry` asks the policy
whether to go round again and sleeps for the backoff if so.

A 401 from the server is surfaced as-is. Tokens are only refreshed before
dispatch, never in response to a failed request.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from .auth import AuthHandlerRegistry
from .exceptions import ApiError, NoResponseError, RefreshFailedError
from .infrastructure.resilience import RetryPolicy as DefaultRetryPolicy
from .normalization import normalize_exception, normalize_response, refresh_failed_error
from .observability import get_logger
from .paths import is_public_path, public_auth_paths
from .protocols import RetryPolicy, Sleeper, Transport
from .refresh import RefreshCoordinator
from .tokens import DEFAULT_REFRESH_LEEWAY_SECONDS, is_token_expiring_soon, is_token_usable
from .types import ApiRequest, TransportResponse

logger = get_logger("nomadcrew_client.pipeline")

_JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


@dataclass
class RetryContext:
    """Per-request retry bookkeeping; discarded when the request finishes."""

    attempt: int
    max_attempts: int
    last_error: ApiError | None = None


class RequestPipeline:
    """Runs a request through the stages and returns the successful response.

    Raises:
        ApiError: For every failure. No other exception type escapes `execute`.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        registry: AuthHandlerRegistry,
        coordinator: RefreshCoordinator | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        token_refresh_leeway_seconds: float = DEFAULT_REFRESH_LEEWAY_SECONDS,
        public_paths: tuple[str, ...] | None = None,
    ) -> None:
        self.transport = transport
        self.registry = registry
        self.clock = clock
        self.coordinator = coordinator or RefreshCoordinator(
            registry, token_is_usable=self._token_is_usable
        )
        self.retry_policy = retry_policy or DefaultRetryPolicy()
        self.sleep = sleep
        self.token_refresh_leeway_seconds = token_refresh_leeway_seconds
        self.public_paths = public_auth_paths() if public_paths is None else public_paths

    async def execute(self, request: ApiRequest) -> TransportResponse:
        try:
            return await self._run(request)
        except ApiError:
            raise
        except Exception as exc:
            logger.error("Unexpected failure in %s %s: %r", request.method, request.path, exc)
            raise normalize_exception(exc) from exc

    async def _run(self, request: ApiRequest) -> TransportResponse:
        context = RetryContext(attempt=0, max_attempts=self.retry_policy.max_retries + 1)
        while True:
            prepared = await self.authenticate(request)
            outcome = await self.dispatch(prepared)
            if isinstance(outcome, TransportResponse) and outcome.ok:
                return outcome
            error = self.normalize(outcome)
            context.last_error = error
            decision = self.retry_policy.should_retry(error, context.attempt)
            if not decision.retry:
                self._log_failure(request, error, context)
                raise error
            context.attempt += 1
            logger.warning(
                "Retry attempt %d/%d for %s %s after %s (waiting %.1fs)",
                context.attempt,
                context.max_attempts - 1,
                request.method,
                request.path,
                error.status,
                decision.delay_seconds,
            )
            await self.sleep(decision.delay_seconds)

    async def authenticate(self, request: ApiRequest) -> ApiRequest:
        """Attach JSON headers and, for protected endpoints, a fresh bearer token."""
        prepared = request.with_headers({**_JSON_HEADERS, **request.headers})
        if request.skip_auth or is_public_path(request.path, self.public_paths):
            return prepared
        if not self.registry.is_registered:
            return prepared

        token = self.registry.get_token()
        if not self.registry.is_initialized():
            # Never block on auth bootstrap; send whatever we have.
            logger.debug("Auth not initialised; sending %s without refresh", request.path)
            return self._with_token(prepared, token)

        if token is None or is_token_expiring_soon(
            token, leeway_seconds=self.token_refresh_leeway_seconds, now=self.clock()
        ):
            try:
                await self.coordinator.refresh()
            except RefreshFailedError as exc:
                token = self.registry.get_token()
                if not self._token_is_usable(token):
                    raise refresh_failed_error() from exc
                logger.warning("Refresh failed; continuing with the current token")
            token = self.registry.get_token()
        return self._with_token(prepared, token)

    async def dispatch(self, request: ApiRequest) -> TransportResponse | NoResponseError:
        try:
            return await self.transport.send(request)
        except NoResponseError as exc:
            logger.warning("No response for %s %s: %s", request.method, request.path, exc.reason)
            return exc

    def normalize(self, outcome: TransportResponse | NoResponseError) -> ApiError:
        if isinstance(outcome, NoResponseError):
            return normalize_exception(outcome)
        return normalize_response(outcome)

    def _token_is_usable(self, token: str | None) -> bool:
        return is_token_usable(token, now=self.clock())

    @staticmethod
    def _with_token(request: ApiRequest, token: str | None) -> ApiRequest:
        if not token:
            return request
        return request.with_headers({"Authorization": f"Bearer {token}"})

    @staticmethod
    def _log_failure(request: ApiRequest, error: ApiError, context: RetryContext) -> None:
        level_warning = error.is_server_error or error.is_network_error
        log = logger.warning if level_warning else logger.debug
        log(
            "%s %s failed after %d attempt(s): status=%s code=%s",
            request.method,
            request.path,
            context.attempt + 1,
            error.status,
            error.code,
        )
