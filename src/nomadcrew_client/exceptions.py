"""Custom exceptions for the NomadCrew API client.

`ApiError` is the only error the request path lets escape. Everything else in
this module is either raised by configuration loading or used internally
between the refresh coordinator, the transport and the pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Self

from .ratelimit import RateLimitInfo, parse_retry_after


class ClientError(Exception):
    """Base exception for all client errors."""

    pass


class ErrorKind(StrEnum):
    """Closed taxonomy of normalised failures."""

    AUTH_ERROR = "AUTH_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT_ERROR = "CONFLICT_ERROR"
    RESOURCE_ERROR = "RESOURCE_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    EXTERNAL_ERROR = "EXTERNAL_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


_KIND_BY_STATUS = {
    0: ErrorKind.NETWORK_ERROR,
    400: ErrorKind.VALIDATION_ERROR,
    401: ErrorKind.AUTH_ERROR,
    403: ErrorKind.AUTH_ERROR,
    404: ErrorKind.RESOURCE_ERROR,
    409: ErrorKind.CONFLICT_ERROR,
    429: ErrorKind.RATE_LIMIT_ERROR,
}

_FROZEN_FIELDS = frozenset({"status", "code", "message", "data", "headers"})


class ApiError(ClientError):
    """Normalised API failure.

    Carries the HTTP status (0 when no response arrived), a stable error code,
    a user-facing message and the raw response body in `data`. Instances are
    immutable; the classifications below are computed from `status`.
    """

    status: int
    code: str
    message: str
    data: Any
    headers: Mapping[str, str]

    def __init__(
        self,
        status: int,
        code: str,
        message: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "headers", MappingProxyType(dict(headers or {})))

    def __setattr__(self, name: str, value: object) -> None:
        if name in _FROZEN_FIELDS:
            raise AttributeError(f"ApiError.{name} is read-only")
        super().__setattr__(name, value)

    def __reduce__(self) -> tuple[type[Self], tuple[Any, ...]]:
        return (
            type(self),
            (self.status, self.code, self.message, self.data, dict(self.headers)),
        )

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, code={self.code!r}, message={self.message!r})"

    @property
    def is_network_error(self) -> bool:
        return self.status == 0

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status <= 599

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def kind(self) -> ErrorKind:
        """Classify the failure into the closed error taxonomy."""
        if self.is_server_error:
            if isinstance(self.data, Mapping) and self.data.get("type") == "EXTERNAL_ERROR":
                return ErrorKind.EXTERNAL_ERROR
            return ErrorKind.SYSTEM_ERROR
        return _KIND_BY_STATUS.get(self.status, ErrorKind.UNKNOWN_ERROR)

    @property
    def rate_limit(self) -> RateLimitInfo:
        return RateLimitInfo.from_headers(self.headers)

    @property
    def retry_after(self) -> int | None:
        """Seconds the server asked us to wait, from the body or the Retry-After header."""
        if isinstance(self.data, Mapping):
            details = self.data.get("details")
            if isinstance(details, Mapping):
                value = details.get("retryAfter")
                if isinstance(value, int | float) and not isinstance(value, bool):
                    return int(value)
        return parse_retry_after(self.headers)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict for logging and debugging."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "data": self.data,
        }


def is_api_error(value: object) -> bool:
    """Return True when value is a normalised API error."""
    return isinstance(value, ApiError)


class NoResponseError(ClientError):
    """Raised by transports when a request produced no HTTP response.

    Covers timeouts, DNS failures and refused connections.
    """

    def __init__(self, reason: str = "no response") -> None:
        self.reason = reason
        super().__init__(f"No response received: {reason}")


class RefreshFailedError(ClientError):
    """Raised to every caller attached to a failed refresh episode."""

    def __init__(self, reason: str = "session refresh failed") -> None:
        self.reason = reason
        super().__init__(reason)


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class NonNegativeNumberEnvVarError(ValueError):
    """Raised when an environment variable must be zero or greater."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be zero or a positive number.")


class BaseUrlError(ValueError):
    """Raised when the API base URL is not an absolute http(s) URL."""

    def __init__(self, value: str) -> None:
        super().__init__(f"API base URL must start with http:// or https:// (got {value!r}).")


class ConfigFileNotFoundError(FileNotFoundError):
    """Raised when a config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(ValueError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {detail}")


class ConfigFileValidationError(ValueError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is invalid: {detail}")
