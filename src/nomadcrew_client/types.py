"""Value types exchanged between the client, the pipeline and transports."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Literal, Self, TypeVar

from .ratelimit import RateLimitInfo

T = TypeVar("T")

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass(frozen=True)
class AuthSnapshot:
    """Read-only view of the auth collaborator's state at one instant."""

    token: str | None = None
    refresh_token: str | None = None
    is_initialized: bool = False


@dataclass(frozen=True)
class RequestConfig:
    """Per-request options supplied by callers."""

    params: Mapping[str, str | int | float] | None = None
    headers: Mapping[str, str] | None = None
    timeout_seconds: float | None = None
    skip_auth: bool = False


@dataclass(frozen=True)
class ApiRequest:
    """A fully described outgoing request, before and after authentication."""

    method: HttpMethod
    path: str
    body: Any = None
    params: Mapping[str, str | int | float] | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    skip_auth: bool = False

    def with_headers(self, extra: Mapping[str, str]) -> Self:
        merged = dict(self.headers)
        merged.update(extra)
        return replace(self, headers=merged)


@dataclass(frozen=True)
class TransportResponse:
    """An HTTP response as seen by the pipeline, before normalisation.

    `body` is the decoded JSON value, the raw text for non-JSON bodies, or
    None when the response had no body.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Successful result returned to callers."""

    data: T
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def rate_limit(self) -> RateLimitInfo:
        return RateLimitInfo.from_headers(self.headers)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of a retry policy consultation."""

    retry: bool
    delay_seconds: float = 0.0

    @property
    def delay_ms(self) -> int:
        return round(self.delay_seconds * 1000)


NO_RETRY = RetryDecision(retry=False)
