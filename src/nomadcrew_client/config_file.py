"""Typed parsing and validation for client config files.

Example file:

    schema_version = 1

    [client]
    base_url = "https://staging.api.nomadcrew.uk"
    timeout_seconds = 20
    max_retries = 2
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ClientConfigFile:
    """Validated client config values loaded from a TOML file."""

    base_url: str | None = None
    api_version: str | None = None
    timeout_seconds: float | None = None
    max_retries: int | None = None
    backoff_base_seconds: float | None = None
    backoff_factor: float | None = None
    backoff_max_seconds: float | None = None
    backoff_jitter_seconds: float | None = None
    token_refresh_leeway_seconds: float | None = None


class _ClientSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str | None = None
    api_version: str | None = None
    timeout_seconds: float | None = None
    max_retries: int | None = None
    backoff_base_seconds: float | None = None
    backoff_factor: float | None = None
    backoff_max_seconds: float | None = None
    backoff_jitter_seconds: float | None = None
    token_refresh_leeway_seconds: float | None = None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text.startswith(("http://", "https://")):
            raise ValueError
        return text.rstrip("/")

    @field_validator("api_version")
    @classmethod
    def _validate_api_version(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().strip("/")
        if not text:
            raise ValueError
        return text

    @field_validator(
        "timeout_seconds", "backoff_base_seconds", "backoff_factor", "backoff_max_seconds"
    )
    @classmethod
    def _validate_positive(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value

    @field_validator("backoff_jitter_seconds", "token_refresh_leeway_seconds")
    @classmethod
    def _validate_non_negative(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator("max_retries")
    @classmethod
    def _validate_max_retries(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    client: _ClientSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_client_config_file(path: Path) -> ClientConfigFile:
    """Load and validate a client TOML config file."""
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    raw_payload = path.read_text(encoding="utf-8")
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    section = model.client
    return ClientConfigFile(
        base_url=section.base_url,
        api_version=section.api_version,
        timeout_seconds=section.timeout_seconds,
        max_retries=section.max_retries,
        backoff_base_seconds=section.backoff_base_seconds,
        backoff_factor=section.backoff_factor,
        backoff_max_seconds=section.backoff_max_seconds,
        backoff_jitter_seconds=section.backoff_jitter_seconds,
        token_refresh_leeway_seconds=section.token_refresh_leeway_seconds,
    )
