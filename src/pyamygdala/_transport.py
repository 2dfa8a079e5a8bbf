"""HTTP transport (the sync adapter the store feeds from)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyamygdala._redact import redact_for_log
from pyamygdala._serialize import serialize
from pyamygdala.config import HeaderValue
from pyamygdala.exceptions import AmygdalaTransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Successful (2xx) response as received."""

    status: int
    url: str
    text: str


class Transport(Protocol):
    """Structural transport interface used by the sync flows.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`HttpTransport`) concrete.
    Implementations resolve only on a 2xx status and raise
    :class:`AmygdalaTransportError` otherwise.
    """

    async def send(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        content_type: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
    ) -> RawResponse: ...


def resolve_headers(
    headers: Mapping[str, HeaderValue] | None,
    content_type: str | None = None,
) -> dict[str, str]:
    """Evaluate callable header values and add the content type."""
    resolved: dict[str, str] = {}
    if content_type:
        resolved["Content-Type"] = content_type
    for key, value in (headers or {}).items():
        resolved[key] = str(value() if callable(value) else value)
    return resolved


def is_success(status: int) -> bool:
    return 200 <= status < 300


class HttpTransport:
    """aiohttp-backed transport.

    GET requests carry *data* as a querystring; every other method sends it
    as the request body.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def send(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        content_type: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
    ) -> RawResponse:
        method = method.upper()
        body: Any = None
        if method == "GET":
            query = serialize(data) if isinstance(data, Mapping) else ""
            if query:
                url = f"{url}{'&' if '?' in url else '?'}{query}"
        else:
            body = data

        request_headers = resolve_headers(headers, content_type)
        _logger.debug("%s %s headers=%s", method, url, redact_for_log(request_headers))

        try:
            async with self._http.request(method, url, data=body, headers=request_headers) as resp:
                status = resp.status
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise AmygdalaTransportError(
                        f"Undecodable response body from {method} {url}: {exc}",
                        status_code=status,
                        url=url,
                        method=method,
                    ) from exc
        except aiohttp.ClientError as exc:
            raise AmygdalaTransportError(
                f"Unable to send request to {url}: {exc}",
                url=url,
                method=method,
            ) from exc

        if not is_success(status):
            raise AmygdalaTransportError(
                f"HTTP {status} from {method} {url}: {text[:200]}",
                status_code=status,
                url=url,
                method=method,
                body=text,
            )

        _logger.debug("%s %s -> %d (%d bytes)", method, url, status, len(text))
        return RawResponse(status=status, url=url, text=text)
