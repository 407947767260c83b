"""Boundary-neutral IO contracts for inbound payloads.

Usage example:
    from nomadcrew_client.io_contracts import ErrorBodyIO

    body: ErrorBodyIO = {
        "type": "VALIDATION_ERROR",
        "code": "VALIDATION_FAILED",
        "message": "Invalid request data",
        "details": {"fields": {"name": "Name is required"}},
    }
"""

from __future__ import annotations

from typing_extensions import NotRequired, TypedDict


class ErrorBodyIO(TypedDict):
    """Backend error envelope."""

    type: NotRequired[str]
    code: NotRequired[str]
    message: NotRequired[str]
    details: NotRequired[dict[str, object] | str]


class JwtClaimsIO(TypedDict):
    """The subset of access-token claims the client reads."""

    exp: int | None
    sub: str
