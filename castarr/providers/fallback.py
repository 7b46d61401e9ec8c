"""
Protocol fallback for media server resources.

Self-hosted servers are inconsistently reachable over HTTPS (self-signed
certificates, no relay) or HTTP (blocked by the network), so every resource
is tried over each protocol in a fixed order. A 401 is terminal: the token
will not become valid over another protocol.
"""
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

from ..core.exceptions import DecodeError, InvalidToken, PlexError, ServiceError
from ..core.transport import RawResponse, Transport, redact
from ..schemas.auth import ServerConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def fetch_with_fallback(
    transport: Transport,
    connection: ServerConnection,
    path: str,
    token: str,
    decode: Callable[[RawResponse], T],
    accept: str = "application/xml",
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    resource: str = "resource",
) -> T:
    """Fetch and decode `path`, trying each protocol of the connection in order"""
    last_error: Optional[PlexError] = None
    query = {"X-Plex-Token": token}
    if params:
        query.update(params)
    request_headers = {"Accept": accept}
    if headers:
        request_headers.update(headers)

    for protocol in connection.protocols:
        url = connection.url(protocol, path)
        logger.debug(f"Fetching {resource} from {redact(url)}")

        try:
            response = await transport.request("GET", url, headers=request_headers, params=query, timeout=timeout)

            if response.status_code == 401:
                raise InvalidToken()
            if response.status_code != 200:
                logger.debug(f"{resource} error body: {response.text[:200]}")
                raise ServiceError(response.status_code)

            try:
                result = decode(response)
            except PlexError:
                raise
            except Exception as e:
                raise DecodeError(f"Undecodable {resource} payload: {e}") from e
            logger.info(f"{resource.capitalize()} received via {protocol.upper()}")
            return result

        except InvalidToken:
            logger.error(f"Server returned 401 for {resource} - token invalid or expired")
            raise
        except PlexError as e:
            last_error = e
            logger.warning(f"Failed {resource} with {protocol.upper()}: {e}")

    raise last_error or DecodeError()
