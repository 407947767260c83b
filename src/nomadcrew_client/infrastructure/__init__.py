"""Concrete infrastructure implementations and shared helpers."""

from .http import RequestsTransport
from .resilience import RetryPolicy
from .validation import IncomingDataError, parse_error_body, validate_as, validate_json_as

__all__ = [
    "IncomingDataError",
    "RequestsTransport",
    "RetryPolicy",
    "parse_error_body",
    "validate_as",
    "validate_json_as",
]
