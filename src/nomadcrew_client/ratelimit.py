"""Rate-limit metadata carried on responses and errors.

Usage example:
    from nomadcrew_client.ratelimit import RateLimitInfo, parse_retry_after

    info = RateLimitInfo.from_headers(error.headers)
    if info.remaining == 0:
        wait = info.retry_after or 60
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Self

RETRY_AFTER = "retry-after"
RATELIMIT_LIMIT = "x-ratelimit-limit"
RATELIMIT_REMAINING = "x-ratelimit-remaining"
RATELIMIT_RESET = "x-ratelimit-reset"

RETAINED_HEADERS = (RETRY_AFTER, RATELIMIT_LIMIT, RATELIMIT_REMAINING, RATELIMIT_RESET)


def retained_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Return the rate-limit headers present in a response, keyed in lower case."""
    if not headers:
        return {}
    lowered = {key.lower(): value for key, value in headers.items()}
    return {name: lowered[name] for name in RETAINED_HEADERS if name in lowered}


def parse_retry_after(headers: Mapping[str, str] | None) -> int | None:
    """Parse Retry-After header into seconds, if available."""
    if not headers:
        return None
    value = retained_headers(headers).get(RETRY_AFTER)
    if not value:
        return None
    value = value.strip()
    if value.isascii() and value.isdigit():
        return int(value)
    try:
        dt = parsedate_to_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        delta = (dt - datetime.now(UTC)).total_seconds()
        return max(0, int(delta))
    except (AttributeError, OverflowError, TypeError, ValueError):
        return None


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    text = value.strip()
    if not text.isascii():
        return None
    try:
        return int(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit headers parsed into integers (None when absent or malformed)."""

    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None
    retry_after: int | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> Self:
        kept = retained_headers(headers)
        return cls(
            limit=_parse_int(kept.get(RATELIMIT_LIMIT)),
            remaining=_parse_int(kept.get(RATELIMIT_REMAINING)),
            reset=_parse_int(kept.get(RATELIMIT_RESET)),
            retry_after=parse_retry_after(kept),
        )
