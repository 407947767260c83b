"""Diagnostic CLI for the NomadCrew API client.

Commands:
- request: Send one request through the full pipeline and show the result
- inspect-token: Show the expiry of an access token
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, Protocol

from typing_extensions import override

import typer
from rich import print as rprint
from rich.console import Console

from .client import ApiClient
from .config import ClientConfig
from .config_file import load_client_config_file
from .exceptions import ApiError, RefreshFailedError
from .observability import get_logger
from .protocols import AuthHandlers
from .tokens import is_token_expiring_soon, token_expiration_time
from .types import HttpMethod, RequestConfig

logger = get_logger("nomadcrew_client.cli")

_METHODS: tuple[HttpMethod, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")


class ClientBuilder(Protocol):
    """Protocol for constructing the CLI's API client."""

    def __call__(self, config: ClientConfig) -> ApiClient:
        """Build a client for one command invocation."""
        ...


class StaticTokenAuthHandlers(AuthHandlers):
    """Auth handlers for a token supplied on the command line or in the environment.

    There is no refresh token, so a refresh always fails; an expired token
    therefore ends in an AUTH_ERROR rather than a doomed request.
    """

    def __init__(self, token: str) -> None:
        self._token = token

    @override
    def get_token(self) -> str | None:
        return self._token

    @override
    def get_refresh_token(self) -> str | None:
        return None

    @override
    def is_initialized(self) -> bool:
        return True

    @override
    async def refresh_session(self) -> None:
        raise RefreshFailedError("static tokens cannot be refreshed")

    @override
    def logout(self) -> None:
        logger.warning("Static access token rejected; set a new NOMADCREW_ACCESS_TOKEN")


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: ClientConfig
    client_builder: ClientBuilder


class UnsupportedMethodError(typer.BadParameter):
    """Raised when the HTTP method is not one the client supports."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported method {method!r}; use one of {', '.join(_METHODS)}.")


class InvalidJsonBodyError(typer.BadParameter):
    """Raised when --data is not valid JSON."""

    def __init__(self) -> None:
        super().__init__("--data must be valid JSON.")


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the nomadcrew-api entry point.")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _parse_method(method: str) -> HttpMethod:
    upper = method.strip().upper()
    for candidate in _METHODS:
        if candidate == upper:
            return candidate
    raise UnsupportedMethodError(method)


def _parse_body(data: str | None) -> Any:
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise InvalidJsonBodyError() from exc


def _render_error(error: ApiError) -> None:
    rprint(f"[red]✗ {error.code}[/red] (status {error.status}): {error.message}")
    rprint(f"  Kind: {error.kind}")
    if error.retry_after is not None:
        rprint(f"  Retry after: {error.retry_after}s")
    if error.data is not None:
        Console().print_json(json.dumps(error.data, default=str))


def create_app(client_builder: ClientBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided client builder."""
    app = typer.Typer(
        add_completion=False,
        help="NomadCrew API client: send requests through the authenticated pipeline",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="TOML config file overriding environment values"),
        ] = None,
    ) -> None:
        """Initialise CLI context."""
        config = ClientConfig.from_env()
        if config_path is not None:
            config = config.with_file_overrides(load_client_config_file(config_path))
        ctx.obj = CliContext(config=config, client_builder=client_builder)

    @app.command()
    def request(
        ctx: typer.Context,
        method: Annotated[str, typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE)")],
        path: Annotated[str, typer.Argument(help="Request path, e.g. /v1/trips")],
        data: Annotated[
            str | None, typer.Option("--data", "-d", help="JSON request body")
        ] = None,
        base_url: Annotated[
            str | None, typer.Option("--base-url", help="Override the API base URL")
        ] = None,
        token: Annotated[
            str | None, typer.Option("--token", "-t", help="Access token to send")
        ] = None,
        max_retries: Annotated[
            int | None, typer.Option("--max-retries", min=0, help="Retries for 5xx responses")
        ] = None,
        no_auth: Annotated[
            bool, typer.Option("--no-auth", help="Send without an access token")
        ] = False,
    ) -> None:
        """Send one request and print the response or the normalised error."""
        state = _get_context(ctx)
        http_method = _parse_method(method)
        body = _parse_body(data)
        config = state.config.with_overrides(
            base_url=base_url, access_token=token, max_retries=max_retries
        )
        client = state.client_builder(config)
        try:
            response = asyncio.run(
                client.request(http_method, path, body, RequestConfig(skip_auth=no_auth))
            )
        except ApiError as error:
            _render_error(error)
            raise typer.Exit(code=1) from error
        rprint(f"[green]✓ {response.status}[/green] {http_method} {path}")
        if response.data is not None:
            Console().print_json(json.dumps(response.data, default=str))

    @app.command(name="inspect-token")
    def inspect_token(
        ctx: typer.Context,
        token: Annotated[
            str | None, typer.Argument(help="Access token (defaults to NOMADCREW_ACCESS_TOKEN)")
        ] = None,
    ) -> None:
        """Show when an access token expires and whether it would be refreshed."""
        state = _get_context(ctx)
        value = token or state.config.access_token
        if not value:
            rprint("[red]✗ No token supplied[/red]")
            raise typer.Exit(code=1)
        expires_at = token_expiration_time(value)
        if expires_at is None:
            rprint("[yellow]Token has no readable expiry; it will be refreshed before use[/yellow]")
            return
        expiring = is_token_expiring_soon(
            value, leeway_seconds=state.config.token_refresh_leeway_seconds
        )
        rprint(f"  Expires: {datetime.fromtimestamp(expires_at, UTC).isoformat()}")
        rprint(f"  Refresh before next request: {'yes' if expiring else 'no'}")

    return app
