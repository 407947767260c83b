"""Late-bound seam between the client core and the application's auth subsystem.

Usage example:
    from nomadcrew_client.auth import AuthHandlerRegistry, CallbackAuthHandlers

    registry = AuthHandlerRegistry()
    registry.register(
        CallbackAuthHandlers(
            get_token_fn=store.access_token,
            get_refresh_token_fn=store.refresh_token,
            is_initialized_fn=store.is_ready,
            refresh_session_fn=store.refresh,
            logout_fn=store.sign_out,
        )
    )
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing_extensions import override

from .observability import get_logger
from .protocols import AuthHandlers
from .types import AuthSnapshot

logger = get_logger("nomadcrew_client.auth")


@dataclass(frozen=True)
class CallbackAuthHandlers(AuthHandlers):
    """Auth handlers assembled from plain callables."""

    get_token_fn: Callable[[], str | None]
    get_refresh_token_fn: Callable[[], str | None]
    is_initialized_fn: Callable[[], bool]
    refresh_session_fn: Callable[[], Awaitable[None]]
    logout_fn: Callable[[], None]

    @override
    def get_token(self) -> str | None:
        return self.get_token_fn()

    @override
    def get_refresh_token(self) -> str | None:
        return self.get_refresh_token_fn()

    @override
    def is_initialized(self) -> bool:
        return self.is_initialized_fn()

    @override
    async def refresh_session(self) -> None:
        await self.refresh_session_fn()

    @override
    def logout(self) -> None:
        self.logout_fn()


class AuthHandlerRegistry:
    """Holds the currently registered auth handlers.

    Registration is last-writer-wins. With nothing registered every accessor
    degrades to "unauthenticated": no token, not initialised, and refresh or
    logout requests are ignored.
    """

    def __init__(self, handlers: AuthHandlers | None = None) -> None:
        self._handlers = handlers

    @property
    def is_registered(self) -> bool:
        return self._handlers is not None

    def register(self, handlers: AuthHandlers) -> None:
        if self._handlers is not None:
            logger.info("Replacing previously registered auth handlers")
        self._handlers = handlers

    def clear(self) -> None:
        self._handlers = None

    def get_token(self) -> str | None:
        if self._handlers is None:
            return None
        return self._handlers.get_token()

    def get_refresh_token(self) -> str | None:
        if self._handlers is None:
            return None
        return self._handlers.get_refresh_token()

    def is_initialized(self) -> bool:
        if self._handlers is None:
            return False
        return self._handlers.is_initialized()

    def snapshot(self) -> AuthSnapshot:
        return AuthSnapshot(
            token=self.get_token(),
            refresh_token=self.get_refresh_token(),
            is_initialized=self.is_initialized(),
        )

    async def refresh_session(self) -> None:
        if self._handlers is None:
            return
        await self._handlers.refresh_session()

    def logout(self) -> None:
        if self._handlers is None:
            return
        self._handlers.logout()
