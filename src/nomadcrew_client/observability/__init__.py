"""Observability helpers."""

from .logging import get_logger, redact_headers

__all__ = ["get_logger", "redact_headers"]
