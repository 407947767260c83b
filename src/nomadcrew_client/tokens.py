"""Access-token inspection helpers.

The signature is never verified here; the backend does that. The client only
reads the `exp` claim to decide when to refresh proactively.
"""

from __future__ import annotations

import base64
import binascii
import time

from .infrastructure.validation import IncomingDataError, parse_jwt_claims
from .io_contracts import JwtClaimsIO
from .observability import get_logger

logger = get_logger("nomadcrew_client.tokens")

DEFAULT_REFRESH_LEEWAY_SECONDS = 300.0


def parse_jwt(token: str | None) -> JwtClaimsIO | None:
    """Decode the payload segment of a JWT, or return None if it is not one."""
    if not token:
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return parse_jwt_claims(raw)
    except (binascii.Error, UnicodeEncodeError, IncomingDataError):
        logger.debug("Access token payload could not be decoded")
        return None


def token_expiration_time(token: str | None) -> float | None:
    """Return the token's expiry as a Unix timestamp, if it carries one."""
    claims = parse_jwt(token)
    if claims is None or claims["exp"] is None:
        return None
    return float(claims["exp"])


def is_token_expiring_soon(
    token: str | None,
    *,
    leeway_seconds: float = DEFAULT_REFRESH_LEEWAY_SECONDS,
    now: float | None = None,
) -> bool:
    """Return True when the token is missing, unreadable, or expires within the leeway."""
    expires_at = token_expiration_time(token)
    if expires_at is None:
        return True
    current = time.time() if now is None else now
    return expires_at - current < leeway_seconds


def is_token_usable(token: str | None, *, now: float | None = None) -> bool:
    """Return True when a token is present and not known to have expired.

    Tokens without a readable expiry are given the benefit of the doubt;
    the server remains the authority on them.
    """
    if not token:
        return False
    expires_at = token_expiration_time(token)
    if expires_at is None:
        return True
    current = time.time() if now is None else now
    return expires_at > current
