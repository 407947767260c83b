"""Versioned API path helpers."""

from __future__ import annotations

from urllib.parse import urlparse

DEFAULT_API_VERSION = "v1"


def api_path(path: str, *, version: str = DEFAULT_API_VERSION) -> str:
    """Return `/<version>/<path>` for a path relative to the API root."""
    clean = path.lstrip("/")
    return f"/{version}/{clean}"


def public_auth_paths(version: str = DEFAULT_API_VERSION) -> tuple[str, ...]:
    """Endpoints that must never wait for, or carry, an access token."""
    return (
        api_path("auth/login", version=version),
        api_path("auth/register", version=version),
        api_path("auth/refresh", version=version),
    )


def is_public_path(path: str, public_paths: tuple[str, ...]) -> bool:
    request_path = urlparse(path).path.rstrip("/")
    return any(request_path.endswith(public.rstrip("/")) for public in public_paths)
