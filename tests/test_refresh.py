"""Tests for single-flight refresh coordination."""

import asyncio

import pytest

from nomadcrew_client.auth import AuthHandlerRegistry
from nomadcrew_client.exceptions import RefreshFailedError
from nomadcrew_client.refresh import RefreshCoordinator, RefreshPhase
from tests.fakes import FakeAuthBackend
from tests.support.tokens import expired_token, fresh_token


def _coordinator(backend: FakeAuthBackend) -> RefreshCoordinator:
    return RefreshCoordinator(AuthHandlerRegistry(backend))


async def _refresh_many(coordinator: RefreshCoordinator, count: int) -> list[BaseException | None]:
    return await asyncio.gather(
        *(coordinator.refresh() for _ in range(count)), return_exceptions=True
    )


class TestRefreshCoordinator:
    """Tests for the IDLE -> REFRESHING -> IDLE state machine."""

    def test_starts_idle(self) -> None:
        coordinator = _coordinator(FakeAuthBackend())
        assert coordinator.phase is RefreshPhase.IDLE
        assert coordinator.is_refreshing is False

    def test_concurrent_callers_share_one_refresh(self) -> None:
        backend = FakeAuthBackend(
            token=expired_token(), refreshed_token=fresh_token(), refresh_delay_seconds=0.01
        )
        coordinator = _coordinator(backend)

        results = asyncio.run(_refresh_many(coordinator, 10))

        assert results == [None] * 10
        assert backend.refresh_calls == 1
        assert coordinator.refresh_count == 1
        assert coordinator.logout_count == 0
        assert coordinator.phase is RefreshPhase.IDLE

    def test_waiters_see_refreshing_phase(self) -> None:
        backend = FakeAuthBackend(refreshed_token=fresh_token(), refresh_delay_seconds=0.01)
        coordinator = _coordinator(backend)
        observed: list[RefreshPhase] = []

        async def scenario() -> None:
            leader = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            observed.append(coordinator.phase)
            await leader
            observed.append(coordinator.phase)

        asyncio.run(scenario())

        assert observed == [RefreshPhase.REFRESHING, RefreshPhase.IDLE]

    def test_rejection_reaches_every_caller_and_logs_out_once(self) -> None:
        backend = FakeAuthBackend(
            token=expired_token(),
            refresh_error=RuntimeError("invalid refresh token"),
            refresh_delay_seconds=0.01,
        )
        coordinator = _coordinator(backend)

        results = asyncio.run(_refresh_many(coordinator, 5))

        assert all(isinstance(result, RefreshFailedError) for result in results)
        assert backend.refresh_calls == 1
        assert backend.logout_calls == 1
        assert coordinator.logout_count == 1
        assert coordinator.phase is RefreshPhase.IDLE

    def test_refresh_without_usable_token_is_a_rejection(self) -> None:
        backend = FakeAuthBackend(token=expired_token(), refreshed_token=None)
        coordinator = _coordinator(backend)

        with pytest.raises(RefreshFailedError):
            asyncio.run(coordinator.refresh())

        assert backend.logout_calls == 1

    def test_no_logout_while_current_token_is_still_valid(self) -> None:
        backend = FakeAuthBackend(token=fresh_token(), refresh_error=RuntimeError("offline"))
        coordinator = _coordinator(backend)

        with pytest.raises(RefreshFailedError):
            asyncio.run(coordinator.refresh())

        assert backend.logout_calls == 0

    def test_returns_to_idle_so_later_expiry_can_refresh_again(self) -> None:
        backend = FakeAuthBackend(token=expired_token(), refresh_error=RuntimeError("down"))
        coordinator = _coordinator(backend)

        with pytest.raises(RefreshFailedError):
            asyncio.run(coordinator.refresh())

        backend.refresh_error = None
        backend.refreshed_token = fresh_token()
        asyncio.run(coordinator.refresh())

        assert backend.refresh_calls == 2
        assert coordinator.refresh_count == 2
        assert backend.token == backend.refreshed_token

    def test_cancelled_leader_releases_waiters(self) -> None:
        backend = FakeAuthBackend(refreshed_token=fresh_token(), refresh_delay_seconds=10)
        coordinator = _coordinator(backend)

        async def scenario() -> BaseException | None:
            leader = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            waiter = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0.01)
            leader.cancel()
            results = await asyncio.gather(waiter, return_exceptions=True)
            return results[0]

        result = asyncio.run(scenario())

        assert isinstance(result, RefreshFailedError)
        assert coordinator.phase is RefreshPhase.IDLE
        assert backend.logout_calls == 0
