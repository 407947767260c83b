"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that the client core depends on,
enabling isolated unit testing with fake implementations.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from .exceptions import ApiError
from .types import ApiRequest, RetryDecision, TransportResponse

Sleeper = Callable[[float], Awaitable[None]]


@runtime_checkable
class Transport(Protocol):
    """Abstract asynchronous HTTP transport."""

    async def send(self, request: ApiRequest) -> TransportResponse:
        """Send a request and return whatever response the server produced.

        Non-2xx responses are returned, not raised.

        Raises:
            NoResponseError: When no HTTP response was received.
        """
        ...


@runtime_checkable
class AuthHandlers(Protocol):
    """Capabilities an auth subsystem supplies to the client core."""

    def get_token(self) -> str | None:
        """Return the current access token, if any."""
        ...

    def get_refresh_token(self) -> str | None:
        """Return the current refresh token, if any."""
        ...

    def is_initialized(self) -> bool:
        """Return True once auth state has finished bootstrapping."""
        ...

    async def refresh_session(self) -> None:
        """Obtain a new access token; raise on failure."""
        ...

    def logout(self) -> None:
        """Drop the session after an unrecoverable refresh failure."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy consulted after each failed attempt."""

    max_retries: int

    def should_retry(self, error: ApiError, attempt: int) -> RetryDecision:
        """Decide whether attempt number `attempt` (0-based) should be retried."""
        ...
