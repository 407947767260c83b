"""Normalisation of transport outcomes into `ApiError`.

Every failure that leaves the client passes through one of these functions:

- `normalize_response` for an HTTP response with a non-success status
- `network_error` when no response was received
- `normalize_exception` for anything raised while handling a request
"""

from __future__ import annotations

from types import MappingProxyType

from .exceptions import ApiError, NoResponseError
from .infrastructure.validation import parse_error_body
from .ratelimit import retained_headers
from .types import TransportResponse

NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"
AUTH_ERROR = "AUTH_ERROR"

ERROR_MESSAGES = MappingProxyType(
    {
        "BAD_REQUEST": "Bad request: The server could not process your request",
        "UNAUTHORIZED": "Session expired. Please login again.",
        "FORBIDDEN": "You do not have permission to perform this action",
        "NOT_FOUND": "The requested resource was not found",
        "CONFLICT": "The request conflicts with the current state of the resource",
        "RATE_LIMITED": "Too many requests. Please try again later.",
        "SERVER_ERROR": "An internal server error occurred",
        NETWORK_ERROR: "No response from server. Please check your connection.",
        UNKNOWN_ERROR: "An unknown error occurred",
        "UNEXPECTED": "An unexpected error occurred",
        "REFRESH_FAILED": "Failed to refresh your session. Please login again.",
    }
)

_DEFAULT_CODE_BY_STATUS = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}


def default_code_for_status(status: int) -> str:
    """Return the error code used when the body does not name one."""
    if 500 <= status <= 599:
        return "SERVER_ERROR"
    return _DEFAULT_CODE_BY_STATUS.get(status, UNKNOWN_ERROR)


def _is_absent(body: object) -> bool:
    return body is None or (isinstance(body, str | bytes) and not body.strip())


def normalize_response(response: TransportResponse) -> ApiError:
    """Map an error response to an ApiError, keeping the raw body in `data`."""
    headers = retained_headers(response.headers)
    if _is_absent(response.body):
        return ApiError(
            response.status, UNKNOWN_ERROR, ERROR_MESSAGES[UNKNOWN_ERROR], None, headers
        )
    envelope = parse_error_body(response.body)
    if envelope is None:
        # Opaque body (HTML error page, plain text, JSON array...).
        return ApiError(
            response.status, UNKNOWN_ERROR, ERROR_MESSAGES[UNKNOWN_ERROR], response.body, headers
        )
    default_code = default_code_for_status(response.status)
    code = envelope.get("code", default_code)
    message = envelope.get("message", ERROR_MESSAGES[default_code])
    return ApiError(response.status, code, message, response.body, headers)


def network_error() -> ApiError:
    """Return the error reported when no response was received."""
    return ApiError(0, NETWORK_ERROR, ERROR_MESSAGES[NETWORK_ERROR])


def refresh_failed_error() -> ApiError:
    """Return the error for a request abandoned because the session could not be refreshed."""
    return ApiError(401, AUTH_ERROR, ERROR_MESSAGES["REFRESH_FAILED"])


def normalize_exception(exc: BaseException) -> ApiError:
    """Map any exception raised while handling a request to an ApiError."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, NoResponseError):
        error = network_error()
    else:
        error = ApiError(0, UNKNOWN_ERROR, ERROR_MESSAGES["UNEXPECTED"])
    error.__cause__ = exc
    return error
