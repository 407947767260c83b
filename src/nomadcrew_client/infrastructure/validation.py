"""Pydantic-based validation helpers for inbound IO payloads."""

from __future__ import annotations

from typing import TypeVar

from typing_extensions import TypedDict

from pydantic import TypeAdapter, ValidationError

from ..io_contracts import ErrorBodyIO, JwtClaimsIO

SchemaT = TypeVar("SchemaT")


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


class ErrorBodyInput(TypedDict, total=False):
    type: object
    code: object
    message: object
    error: object
    details: object


class JwtClaimsInput(TypedDict, total=False):
    exp: int | float | None
    sub: object


def validate_as(schema: type[SchemaT], payload: object) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        message = f"Invalid payload for {schema}."
        raise IncomingDataError(message) from exc


def validate_json_as(schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema}."
        raise IncomingDataError(message) from exc


def _non_empty_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_error_body(payload: object) -> ErrorBodyIO | None:
    """Read the known envelope fields from an error body.

    Returns None when the body is not a JSON object. Fields with the wrong
    type are dropped; the caller keeps the raw payload for everything else.
    """
    try:
        body = validate_as(ErrorBodyInput, payload)
    except IncomingDataError:
        return None
    parsed: ErrorBodyIO = {}
    error_type = _non_empty_str(body.get("type"))
    if error_type is not None:
        parsed["type"] = error_type
    code = _non_empty_str(body.get("code"))
    if code is not None:
        parsed["code"] = code
    # Older endpoints report the human message under "error".
    message = _non_empty_str(body.get("message")) or _non_empty_str(body.get("error"))
    if message is not None:
        parsed["message"] = message
    details = body.get("details")
    if isinstance(details, str):
        parsed["details"] = details
    elif isinstance(details, dict):
        parsed["details"] = validate_as(dict[str, object], details)
    return parsed


def parse_jwt_claims(payload: str | bytes) -> JwtClaimsIO:
    claims = validate_json_as(JwtClaimsInput, payload)
    exp = claims.get("exp")
    sub = claims.get("sub")
    return {
        "exp": int(exp) if exp is not None else None,
        "sub": sub if isinstance(sub, str) else "",
    }
