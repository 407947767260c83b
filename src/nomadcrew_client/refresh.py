"""Single-flight coordination of session refreshes.

However many requests discover an expired token at the same time, exactly one
of them (the leader) calls `refresh_session()`. The others attach to the
leader's outcome and wake up when it settles.

State machine:

    IDLE --first caller--> REFRESHING --settled (resolved | rejected)--> IDLE

The slot is owned by the coordinator; nothing else may read or write it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import StrEnum

from .auth import AuthHandlerRegistry
from .exceptions import RefreshFailedError
from .observability import get_logger
from .tokens import is_token_usable

logger = get_logger("nomadcrew_client.refresh")


class RefreshPhase(StrEnum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """Guarded state machine around one shared refresh outcome."""

    def __init__(
        self,
        registry: AuthHandlerRegistry,
        *,
        token_is_usable: Callable[[str | None], bool] = is_token_usable,
    ) -> None:
        self._registry = registry
        self._token_is_usable = token_is_usable
        self._phase = RefreshPhase.IDLE
        self._outcome: asyncio.Future[None] | None = None
        self.refresh_count = 0
        self.logout_count = 0

    @property
    def phase(self) -> RefreshPhase:
        return self._phase

    @property
    def is_refreshing(self) -> bool:
        return self._phase is RefreshPhase.REFRESHING

    async def refresh(self) -> None:
        """Refresh the session, or wait for the refresh already in flight.

        Raises:
            RefreshFailedError: If the shared refresh episode failed.
        """
        outcome = self._outcome
        if outcome is None:
            outcome = self._begin()
            await self._lead(outcome)
            await outcome
            return
        logger.debug("Refresh already in flight; waiting for its outcome")
        await asyncio.shield(outcome)

    def _begin(self) -> asyncio.Future[None]:
        outcome: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._outcome = outcome
        self._phase = RefreshPhase.REFRESHING
        self.refresh_count += 1
        return outcome

    async def _lead(self, outcome: asyncio.Future[None]) -> None:
        failure: RefreshFailedError | None = None
        completed = False
        try:
            # Let requests scheduled in the same loop iteration attach first.
            await asyncio.sleep(0)
            try:
                await self._registry.refresh_session()
            except Exception as exc:
                logger.error("Session refresh failed: %s", exc)
                failure = RefreshFailedError(f"session refresh failed: {exc}")
                failure.__cause__ = exc
            else:
                if not self._token_is_usable(self._registry.get_token()):
                    logger.error("Session refresh completed without a usable access token")
                    failure = RefreshFailedError("no usable access token after refresh")
            if failure is not None and not self._token_is_usable(self._registry.get_token()):
                self._logout_once()
            completed = True
        finally:
            interrupted = not completed and failure is None
            if interrupted:
                failure = RefreshFailedError("session refresh was interrupted")
            self._settle(outcome, failure, mark_retrieved=interrupted)

    def _logout_once(self) -> None:
        # Only the leader gets here, so this runs once per failed episode.
        self.logout_count += 1
        logger.warning("Logging out after failed session refresh")
        self._registry.logout()

    def _settle(
        self,
        outcome: asyncio.Future[None],
        failure: RefreshFailedError | None,
        *,
        mark_retrieved: bool = False,
    ) -> None:
        self._outcome = None
        self._phase = RefreshPhase.IDLE
        if failure is None:
            outcome.set_result(None)
            return
        outcome.set_exception(failure)
        if mark_retrieved:
            # The interrupted leader will never await its own outcome.
            outcome.exception()
