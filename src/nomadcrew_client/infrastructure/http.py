"""HTTP transport implementations for infrastructure.

Usage example:
    import requests

    from nomadcrew_client.infrastructure.http import RequestsTransport

    transport = RequestsTransport(
        base_url="https://api.nomadcrew.uk",
        session=requests.Session(),
        timeout_seconds=15.0,
    )
    response = await transport.send(ApiRequest(method="GET", path="/v1/trips"))
"""

from __future__ import annotations

import asyncio
from typing import Any

from typing_extensions import override

import requests

from ..exceptions import NoResponseError
from ..observability import get_logger, redact_headers
from ..protocols import Transport
from ..types import ApiRequest, TransportResponse
from .validation import IncomingDataError, validate_json_as

logger = get_logger("nomadcrew_client.infrastructure.http")


def _decode_body(response: requests.Response) -> Any:
    """Return decoded JSON, the raw text for non-JSON bodies, or None when empty."""
    try:
        text = response.text
    except (UnicodeDecodeError, ValueError):
        return None
    if not text.strip():
        return None
    try:
        return validate_json_as(object, text)
    except IncomingDataError:
        return text


class RequestsTransport(Transport):
    """Requests-backed transport.

    The blocking call runs in a worker thread so the event loop is never held.
    Every `requests` exception (timeouts, DNS and connection failures) becomes
    `NoResponseError`; non-2xx responses are returned as-is for normalisation.
    """

    def __init__(
        self,
        *,
        base_url: str,
        session: requests.Session | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    @override
    async def send(self, request: ApiRequest) -> TransportResponse:
        return await asyncio.to_thread(self._send_blocking, request)

    def _send_blocking(self, request: ApiRequest) -> TransportResponse:
        url = self.url_for(request.path)
        timeout = request.timeout_seconds or self.timeout_seconds
        logger.debug(
            "HTTP %s %s headers=%s", request.method, url, redact_headers(request.headers)
        )
        try:
            r = self.session.request(
                request.method,
                url,
                params=request.params,
                json=request.body,
                headers=dict(request.headers),
                timeout=timeout,
            )
        except requests.Timeout as exc:
            raise NoResponseError(f"timed out after {timeout}s") from exc
        except requests.RequestException as exc:
            raise NoResponseError(type(exc).__name__) from exc

        return TransportResponse(
            status=r.status_code,
            headers={key.lower(): value for key, value in r.headers.items()},
            body=_decode_body(r),
        )
