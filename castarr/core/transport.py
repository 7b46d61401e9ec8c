"""
HTTP(S) transport used by every outbound call.
Wraps httpx with the TLS trust policy, no-cache headers and error classification.
"""
import errno
import json
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

import httpx

from .config import settings
from .exceptions import DecodeError, InvalidURL, NetworkError, NetworkReason
from . import tls

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}

_TOKEN_PATTERN = re.compile(r"(X-Plex-Token=)[^&]+", re.IGNORECASE)


def redact(url: str) -> str:
    """Strip the token from a URL before it is logged"""
    return _TOKEN_PATTERN.sub(r"\1<redacted>", url)


@dataclass
class RawResponse:
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.content)
        except ValueError as e:
            raise DecodeError(f"Invalid JSON payload: {e}") from e


def _caused_by(exc: BaseException, kind) -> Optional[BaseException]:
    current: Optional[BaseException] = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, kind):
            return current
        current = current.__cause__ or current.__context__
    return None


def classify_error(exc: httpx.HTTPError) -> NetworkError:
    """Map an httpx failure onto the transport error reasons"""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(NetworkReason.timed_out)

    if isinstance(exc, httpx.ConnectError):
        if _caused_by(exc, socket.gaierror) is not None:
            return NetworkError(NetworkReason.not_connected)
        os_error = _caused_by(exc, OSError)
        if os_error is not None and getattr(os_error, "errno", None) in (errno.ENETUNREACH, errno.ENETDOWN):
            return NetworkError(NetworkReason.not_connected)
        return NetworkError(NetworkReason.cannot_connect)

    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError, httpx.CloseError)):
        return NetworkError(NetworkReason.connection_lost)

    return NetworkError(NetworkReason.other, f"Network error: {exc}")


class Transport:
    """Executes single HTTP requests; a fresh client per call keeps every fetch live"""

    def __init__(
        self,
        timeout: float = settings.data_timeout,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        # Injected transports (tests, demo) bypass TLS handling entirely
        self._transport = transport
        self._chain_context = None
        self._relay_context = None
        self._relay_hosts: Set[Tuple[str, int]] = set()

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> RawResponse:
        request_headers = dict(NO_CACHE_HEADERS)
        if headers:
            request_headers.update(headers)
        timeout = timeout if timeout is not None else self.timeout

        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise InvalidURL() from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidURL()

        host_key = (parsed.host, parsed.port or (443 if parsed.scheme == "https" else 80))

        try:
            return await self._send(method, url, request_headers, body, params, timeout,
                                    relay=host_key in self._relay_hosts)
        except httpx.ConnectError as e:
            if (
                self._transport is None
                and parsed.scheme == "https"
                and host_key not in self._relay_hosts
                and tls.is_certificate_failure(e)
                and await tls.presents_relay_certificate(host_key[0], host_key[1], timeout)
            ):
                logger.info(f"Accepting relay certificate for {host_key[0]}:{host_key[1]}")
                self._relay_hosts.add(host_key)
                try:
                    return await self._send(method, url, request_headers, body, params, timeout, relay=True)
                except httpx.HTTPError as retry_error:
                    raise classify_error(retry_error) from retry_error
            raise classify_error(e) from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise InvalidURL() from e
        except httpx.HTTPError as e:
            logger.debug(f"{method} {redact(url)} failed: {e!r}")
            raise classify_error(e) from e

    async def _send(self, method, url, headers, body, params, timeout, relay: bool = False) -> RawResponse:
        async with self._client(relay) as client:
            response = await client.request(
                method,
                url,
                headers=headers,
                content=body if isinstance(body, (bytes, str)) else None,
                data=body if isinstance(body, dict) else None,
                params=params,
                timeout=timeout,
            )
            logger.debug(f"{method} {redact(str(response.url))} -> {response.status_code}")
            return RawResponse(
                status_code=response.status_code,
                content=response.content,
                headers=dict(response.headers),
            )

    def _client(self, relay: bool) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(transport=self._transport)

        if relay:
            if self._relay_context is None:
                self._relay_context = tls.build_relay_context()
            context = self._relay_context
        else:
            if self._chain_context is None:
                self._chain_context = tls.build_chain_context()
            context = self._chain_context

        # retries=1 rides out a connection dropped during a network transition
        return httpx.AsyncClient(transport=httpx.AsyncHTTPTransport(verify=context, retries=1))
