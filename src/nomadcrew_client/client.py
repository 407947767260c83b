"""Collaborator-facing API client.

Usage example:
    from nomadcrew_client.client import ApiClient
    from nomadcrew_client.infrastructure import RequestsTransport
    from nomadcrew_client.paths import api_path

    client = ApiClient(transport=RequestsTransport(base_url="https://api.nomadcrew.uk"))
    client.register_auth_handlers(handlers)
    trips = await client.get(api_path("trips"))
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

from .auth import AuthHandlerRegistry
from .paths import DEFAULT_API_VERSION, public_auth_paths
from .pipeline import RequestPipeline
from .protocols import AuthHandlers, RetryPolicy, Sleeper, Transport
from .refresh import RefreshCoordinator
from .tokens import DEFAULT_REFRESH_LEEWAY_SECONDS
from .types import ApiRequest, ApiResponse, HttpMethod, RequestConfig


class ApiClient:
    """Authenticated JSON API client.

    Construct one per application and pass it to the features that need it.
    Every method returns an `ApiResponse` or raises `ApiError`.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        registry: AuthHandlerRegistry | None = None,
        retry_policy: RetryPolicy | None = None,
        api_version: str = DEFAULT_API_VERSION,
        token_refresh_leeway_seconds: float = DEFAULT_REFRESH_LEEWAY_SECONDS,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry or AuthHandlerRegistry()
        self.pipeline = RequestPipeline(
            transport=transport,
            registry=self.registry,
            retry_policy=retry_policy,
            sleep=sleep,
            clock=clock,
            token_refresh_leeway_seconds=token_refresh_leeway_seconds,
            public_paths=public_auth_paths(api_version),
        )

    @property
    def refresh_coordinator(self) -> RefreshCoordinator:
        return self.pipeline.coordinator

    def register_auth_handlers(self, handlers: AuthHandlers) -> None:
        """Install the auth subsystem's handlers, replacing any previous set."""
        self.registry.register(handlers)

    async def request(
        self,
        method: HttpMethod,
        path: str,
        body: Any = None,
        config: RequestConfig | None = None,
    ) -> ApiResponse[Any]:
        options = config or RequestConfig()
        response = await self.pipeline.execute(
            ApiRequest(
                method=method,
                path=path,
                body=body,
                params=options.params,
                headers=dict(options.headers or {}),
                timeout_seconds=options.timeout_seconds,
                skip_auth=options.skip_auth,
            )
        )
        return ApiResponse(data=response.body, status=response.status, headers=response.headers)

    async def get(self, path: str, config: RequestConfig | None = None) -> ApiResponse[Any]:
        return await self.request("GET", path, None, config)

    async def post(
        self, path: str, body: Any = None, config: RequestConfig | None = None
    ) -> ApiResponse[Any]:
        return await self.request("POST", path, body, config)

    async def put(
        self, path: str, body: Any = None, config: RequestConfig | None = None
    ) -> ApiResponse[Any]:
        return await self.request("PUT", path, body, config)

    async def patch(
        self, path: str, body: Any = None, config: RequestConfig | None = None
    ) -> ApiResponse[Any]:
        return await self.request("PATCH", path, body, config)

    async def delete(
        self, path: str, body: Any = None, config: RequestConfig | None = None
    ) -> ApiResponse[Any]:
        return await self.request("DELETE", path, body, config)
