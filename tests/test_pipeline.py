"""Tests for the request pipeline stages."""

import asyncio

import pytest

from nomadcrew_client.auth import AuthHandlerRegistry
from nomadcrew_client.exceptions import ApiError, NoResponseError
from nomadcrew_client.pipeline import RequestPipeline
from nomadcrew_client.types import ApiRequest
from tests.fakes import FakeAuthBackend, FakeTransport, RecordingSleeper, failing, ok
from tests.support.tokens import expired_token, expiring_token, fresh_token


def _pipeline(
    transport: FakeTransport,
    backend: FakeAuthBackend | None = None,
    sleeper: RecordingSleeper | None = None,
) -> RequestPipeline:
    return RequestPipeline(
        transport=transport,
        registry=AuthHandlerRegistry(backend),
        sleep=sleeper or RecordingSleeper(),
    )


def _get(path: str = "/v1/trips", **kwargs: object) -> ApiRequest:
    return ApiRequest(method="GET", path=path, **kwargs)  # type: ignore[arg-type]


class TestAuthenticateStage:
    """Tests for token attachment and proactive refresh."""

    def test_attaches_json_and_bearer_headers(self) -> None:
        token = fresh_token()
        pipeline = _pipeline(FakeTransport(), FakeAuthBackend(token=token))

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert prepared.headers["Authorization"] == f"Bearer {token}"
        assert prepared.headers["Accept"] == "application/json"
        assert prepared.headers["Content-Type"] == "application/json"

    def test_caller_headers_override_defaults(self) -> None:
        pipeline = _pipeline(FakeTransport())
        request = _get(headers={"Accept": "text/csv", "X-Trip": "t1"})

        prepared = asyncio.run(pipeline.authenticate(request))

        assert prepared.headers["Accept"] == "text/csv"
        assert prepared.headers["X-Trip"] == "t1"

    def test_unregistered_auth_sends_without_token(self) -> None:
        pipeline = _pipeline(FakeTransport())
        prepared = asyncio.run(pipeline.authenticate(_get()))
        assert "Authorization" not in prepared.headers

    def test_uninitialised_auth_does_not_block_or_refresh(self) -> None:
        backend = FakeAuthBackend(token=expired_token(), initialized=False)
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert backend.refresh_calls == 0
        assert prepared.headers["Authorization"] == f"Bearer {backend.token}"

    def test_uninitialised_auth_without_token_sends_anonymously(self) -> None:
        backend = FakeAuthBackend(token=None, initialized=False)
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert backend.refresh_calls == 0
        assert "Authorization" not in prepared.headers

    def test_missing_token_triggers_refresh(self) -> None:
        new_token = fresh_token()
        backend = FakeAuthBackend(token=None, refreshed_token=new_token)
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert backend.refresh_calls == 1
        assert prepared.headers["Authorization"] == f"Bearer {new_token}"

    def test_expiring_token_triggers_refresh(self) -> None:
        new_token = fresh_token(sub="user-2")
        backend = FakeAuthBackend(token=expiring_token(), refreshed_token=new_token)
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert backend.refresh_calls == 1
        assert prepared.headers["Authorization"] == f"Bearer {new_token}"

    def test_fresh_token_skips_refresh(self) -> None:
        backend = FakeAuthBackend(token=fresh_token())
        pipeline = _pipeline(FakeTransport(), backend)

        asyncio.run(pipeline.authenticate(_get()))

        assert backend.refresh_calls == 0

    def test_failed_refresh_without_usable_token_raises_auth_error(self) -> None:
        backend = FakeAuthBackend(token=expired_token(), refresh_error=RuntimeError("revoked"))
        pipeline = _pipeline(FakeTransport(), backend)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(pipeline.authenticate(_get()))

        assert exc_info.value.is_auth_error is True
        assert exc_info.value.code == "AUTH_ERROR"
        assert backend.logout_calls == 1

    def test_failed_refresh_with_valid_token_continues(self) -> None:
        token = expiring_token()
        backend = FakeAuthBackend(token=token, refresh_error=RuntimeError("offline"))
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get()))

        assert prepared.headers["Authorization"] == f"Bearer {token}"
        assert backend.logout_calls == 0

    @pytest.mark.parametrize("path", ["/v1/auth/login", "/v1/auth/register", "/v1/auth/refresh"])
    def test_public_auth_endpoints_skip_auth(self, path: str) -> None:
        backend = FakeAuthBackend(token=None, refreshed_token=fresh_token())
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get(path)))

        assert backend.refresh_calls == 0
        assert "Authorization" not in prepared.headers

    def test_skip_auth_flag(self) -> None:
        backend = FakeAuthBackend(token=fresh_token())
        pipeline = _pipeline(FakeTransport(), backend)

        prepared = asyncio.run(pipeline.authenticate(_get(skip_auth=True)))

        assert "Authorization" not in prepared.headers


class TestExecute:
    """Tests for dispatch, normalisation and the retry loop."""

    def test_returns_successful_response(self) -> None:
        transport = FakeTransport([ok({"trips": []})])
        response = asyncio.run(_pipeline(transport).execute(_get()))
        assert response.status == 200
        assert response.body == {"trips": []}

    def test_retries_server_errors_then_succeeds(self) -> None:
        sleeper = RecordingSleeper()
        transport = FakeTransport([failing(503), failing(502), ok({"ok": True})])

        response = asyncio.run(_pipeline(transport, sleeper=sleeper).execute(_get()))

        assert response.body == {"ok": True}
        assert len(transport.calls) == 3
        assert sleeper.delays == [1.0, 2.0]

    def test_network_errors_are_not_retried(self) -> None:
        sleeper = RecordingSleeper()
        transport = FakeTransport([NoResponseError("ConnectionError")])

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(_pipeline(transport, sleeper=sleeper).execute(_get()))

        assert exc_info.value.code == "NETWORK_ERROR"
        assert len(transport.calls) == 1
        assert sleeper.delays == []

    def test_server_401_is_surfaced_without_refresh(self) -> None:
        backend = FakeAuthBackend(token=fresh_token(), refreshed_token=fresh_token("other"))
        body = {"type": "AUTH_ERROR", "code": "token_expired", "message": "Session expired"}
        transport = FakeTransport([failing(401, body)])

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(_pipeline(transport, backend).execute(_get()))

        assert exc_info.value.status == 401
        assert exc_info.value.data == body
        assert backend.refresh_calls == 0
        assert len(transport.calls) == 1

    def test_token_is_reattached_on_each_attempt(self) -> None:
        backend = FakeAuthBackend(token=fresh_token())
        transport = FakeTransport([failing(500), ok()])

        asyncio.run(_pipeline(transport, backend).execute(_get()))

        assert transport.authorization_headers == [f"Bearer {backend.token}"] * 2

    def test_unexpected_transport_failure_is_normalised(self) -> None:
        class BrokenTransport(FakeTransport):
            async def send(self, request: ApiRequest):  # type: ignore[override]
                raise ValueError("bad header")

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(_pipeline(BrokenTransport()).execute(_get()))

        assert exc_info.value.status == 0
        assert exc_info.value.code == "UNKNOWN_ERROR"
        assert isinstance(exc_info.value.__cause__, ValueError)
