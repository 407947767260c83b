"""Shared logging utilities for consistent client observability.

Usage example:
    from nomadcrew_client.observability.logging import get_logger

    logger = get_logger("nomadcrew_client.pipeline")
    logger.info("Dispatching %s %s", method, path)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_REDACTED = "<redacted>"
_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-refresh-token"})


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name).

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def redact_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Return a copy of headers that is safe to log.

    Credential-bearing headers keep their key but lose their value.
    """
    if not headers:
        return {}
    return {
        key: _REDACTED if key.lower() in _SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }
