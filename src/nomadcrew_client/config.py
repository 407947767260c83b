"""Centralised, injectable configuration for the NomadCrew API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import ClientConfigFile
from .exceptions import BaseUrlError, NonNegativeNumberEnvVarError, PositiveNumberEnvVarError

DEFAULT_BASE_URL = "https://api.nomadcrew.uk"


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration object for the API client.

    Load from environment with `ClientConfig.from_env()` or construct directly for testing.
    """

    # Backend
    base_url: str = DEFAULT_BASE_URL
    api_version: str = "v1"
    timeout_seconds: float = 15.0

    # Retry policy (server errors only)
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    backoff_factor: float = 2.0
    backoff_max_seconds: float = 10.0
    backoff_jitter_seconds: float = 0.0

    # Auth
    token_refresh_leeway_seconds: float = 300.0
    access_token: str = ""  # static token for the diagnostic CLI only

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            ClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            base_url=_parse_base_url(os.getenv("NOMADCREW_API_URL", "")),
            api_version=os.getenv("NOMADCREW_API_VERSION", "v1").strip().strip("/") or "v1",
            timeout_seconds=_parse_positive_float(
                os.getenv("NOMADCREW_TIMEOUT_SECONDS", "15"), env_name="NOMADCREW_TIMEOUT_SECONDS"
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("NOMADCREW_MAX_RETRIES", "3"), env_name="NOMADCREW_MAX_RETRIES"
            ),
            backoff_base_seconds=_parse_positive_float(
                os.getenv("NOMADCREW_BACKOFF_BASE_SECONDS", "1"),
                env_name="NOMADCREW_BACKOFF_BASE_SECONDS",
            ),
            backoff_factor=_parse_positive_float(
                os.getenv("NOMADCREW_BACKOFF_FACTOR", "2"), env_name="NOMADCREW_BACKOFF_FACTOR"
            ),
            backoff_max_seconds=_parse_positive_float(
                os.getenv("NOMADCREW_BACKOFF_MAX_SECONDS", "10"),
                env_name="NOMADCREW_BACKOFF_MAX_SECONDS",
            ),
            backoff_jitter_seconds=_parse_non_negative_float(
                os.getenv("NOMADCREW_BACKOFF_JITTER_SECONDS", "0"),
                env_name="NOMADCREW_BACKOFF_JITTER_SECONDS",
            ),
            token_refresh_leeway_seconds=_parse_non_negative_float(
                os.getenv("NOMADCREW_TOKEN_REFRESH_LEEWAY_SECONDS", "300"),
                env_name="NOMADCREW_TOKEN_REFRESH_LEEWAY_SECONDS",
            ),
            access_token=os.getenv("NOMADCREW_ACCESS_TOKEN", "").strip(),
        )

    @property
    def api_root(self) -> str:
        """Base URL without a trailing slash."""
        return self.base_url.rstrip("/")

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        access_token: str | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            base_url=self.base_url if base_url is None else _parse_base_url(base_url),
            timeout_seconds=self.timeout_seconds if timeout_seconds is None else timeout_seconds,
            max_retries=self.max_retries if max_retries is None else max_retries,
            access_token=self.access_token if access_token is None else access_token.strip(),
        )

    def with_file_overrides(self, file_config: ClientConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            base_url=self.base_url if file_config.base_url is None else file_config.base_url,
            api_version=self.api_version
            if file_config.api_version is None
            else file_config.api_version,
            timeout_seconds=self.timeout_seconds
            if file_config.timeout_seconds is None
            else file_config.timeout_seconds,
            max_retries=self.max_retries
            if file_config.max_retries is None
            else file_config.max_retries,
            backoff_base_seconds=self.backoff_base_seconds
            if file_config.backoff_base_seconds is None
            else file_config.backoff_base_seconds,
            backoff_factor=self.backoff_factor
            if file_config.backoff_factor is None
            else file_config.backoff_factor,
            backoff_max_seconds=self.backoff_max_seconds
            if file_config.backoff_max_seconds is None
            else file_config.backoff_max_seconds,
            backoff_jitter_seconds=self.backoff_jitter_seconds
            if file_config.backoff_jitter_seconds is None
            else file_config.backoff_jitter_seconds,
            token_refresh_leeway_seconds=self.token_refresh_leeway_seconds
            if file_config.token_refresh_leeway_seconds is None
            else file_config.token_refresh_leeway_seconds,
        )


def _parse_base_url(value: str) -> str:
    """Parse the API base URL, falling back to the production default."""
    text = value.strip()
    if not text:
        return DEFAULT_BASE_URL
    if not text.startswith(("http://", "https://")):
        raise BaseUrlError(text)
    return text.rstrip("/")


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a strictly positive number from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_non_negative_float(value: str, *, env_name: str) -> float:
    """Parse a number that may be zero from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise NonNegativeNumberEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeNumberEnvVarError(env_name)
    return parsed


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    """Parse a whole number that may be zero from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeNumberEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeNumberEnvVarError(env_name)
    return parsed
