"""Composition root for wiring the client and CLI dependencies."""

from __future__ import annotations

import requests

from .auth import AuthHandlerRegistry
from .cli import StaticTokenAuthHandlers, create_app
from .client import ApiClient
from .config import ClientConfig
from .infrastructure import RequestsTransport, RetryPolicy


def build_api_client(
    config: ClientConfig,
    *,
    session: requests.Session | None = None,
    registry: AuthHandlerRegistry | None = None,
) -> ApiClient:
    """Build a client backed by `requests` from configuration.

    Args:
        config: Client configuration (base URL, timeouts, retry policy).
        session: Optional pre-configured requests session.
        registry: Optional auth registry shared with the application's auth bootstrap.
    """
    transport = RequestsTransport(
        base_url=config.api_root,
        session=session or requests.Session(),
        timeout_seconds=config.timeout_seconds,
    )
    retry_policy = RetryPolicy(
        max_retries=config.max_retries,
        base_delay_seconds=config.backoff_base_seconds,
        backoff_factor=config.backoff_factor,
        max_delay_seconds=config.backoff_max_seconds,
        jitter_seconds=config.backoff_jitter_seconds,
    )
    return ApiClient(
        transport=transport,
        registry=registry,
        retry_policy=retry_policy,
        api_version=config.api_version,
        token_refresh_leeway_seconds=config.token_refresh_leeway_seconds,
    )


def build_cli_client(config: ClientConfig) -> ApiClient:
    """Build the CLI's client, authenticating with the configured static token."""
    client = build_api_client(config)
    if config.access_token:
        client.register_auth_handlers(StaticTokenAuthHandlers(config.access_token))
    return client


app = create_app(build_cli_client)
