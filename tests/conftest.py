"""Pytest fixtures and fake wiring for testing.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import socket
from collections.abc import Callable

import pytest

from nomadcrew_client.client import ApiClient
from nomadcrew_client.infrastructure import RetryPolicy
from tests.fakes import FakeAuthBackend, FakeTransport, RecordingSleeper

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self, *args, **kwargs):
    """Raise an error if any test tries to make a real network connection."""
    raise RuntimeError(
        "Tests must not make network connections! "
        "Use FakeTransport or a mocked requests.Session instead. "
        f"Attempted connection to: {args}"
    )


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch):
    """Block all network access in tests.

    This fixture runs automatically for all tests and prevents any real
    network connections. Tests that need HTTP should use FakeTransport
    or MagicMock.

    If you need E2E tests with real network access, mark them with:
        @pytest.mark.e2e
    and run them separately with: pytest -m e2e
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


# =============================================================================
# Client wiring
# =============================================================================


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def backend() -> FakeAuthBackend:
    return FakeAuthBackend()


ClientFactory = Callable[..., ApiClient]


@pytest.fixture
def make_client(transport: FakeTransport, sleeper: RecordingSleeper) -> ClientFactory:
    """Build an ApiClient over the fake transport with instant backoff."""

    def factory(
        *, handlers: FakeAuthBackend | None = None, retry_policy: RetryPolicy | None = None
    ) -> ApiClient:
        client = ApiClient(
            transport=transport,
            retry_policy=retry_policy or RetryPolicy(),
            sleep=sleeper,
        )
        if handlers is not None:
            client.register_auth_handlers(handlers)
        return client

    return factory
