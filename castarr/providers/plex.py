import logging
from typing import Optional

from .base import BaseProvider
from .decoders import (
    parse_activities_xml,
    parse_capabilities_json,
    parse_movie_metadata_xml,
    parse_sessions_xml,
)
from .fallback import fetch_with_fallback
from ..core.config import settings
from ..core.exceptions import NotAuthenticated
from ..core.transport import Transport
from ..schemas.auth import ServerConnection
from ..schemas.metadata import MovieMetadataContainer
from ..schemas.server import ActivitiesContainer, ServerCapabilities
from ..schemas.session import SessionsContainer

logger = logging.getLogger(__name__)


class PlexProvider(BaseProvider):

    def __init__(
        self,
        connection: Optional[ServerConnection],
        token: Optional[str],
        transport: Optional[Transport] = None,
        timeout: float = settings.data_timeout,
    ):
        self.connection = connection
        self.token = token
        self.transport = transport or Transport(timeout=timeout)
        self.timeout = timeout
        self.user_agent = f"{settings.plex_product}/1.0"

    def _require_auth(self) -> None:
        if self.connection is None or not self.token:
            raise NotAuthenticated()

    async def get_capabilities(self) -> ServerCapabilities:
        """Check server capabilities; also serves as the token validity probe"""
        self._require_auth()
        logger.debug("Checking server capabilities...")
        return await fetch_with_fallback(
            self.transport,
            self.connection,
            "/",
            self.token,
            lambda response: parse_capabilities_json(response.json()),
            accept="application/json",
            timeout=self.timeout,
            resource="server capabilities",
        )

    async def get_activities(self) -> ActivitiesContainer:
        self._require_auth()
        return await fetch_with_fallback(
            self.transport,
            self.connection,
            "/activities/",
            self.token,
            lambda response: parse_activities_xml(response.content),
            timeout=self.timeout,
            resource="activities",
        )

    async def get_sessions(self) -> SessionsContainer:
        self._require_auth()
        return await fetch_with_fallback(
            self.transport,
            self.connection,
            "/status/sessions",
            self.token,
            lambda response: parse_sessions_xml(response.content),
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            resource="sessions",
        )

    async def get_movie_metadata(self, rating_key: str) -> MovieMetadataContainer:
        self._require_auth()
        return await fetch_with_fallback(
            self.transport,
            self.connection,
            f"/library/metadata/{rating_key}",
            self.token,
            lambda response: parse_movie_metadata_xml(response.content),
            params={"includeGuids": "1"},
            timeout=self.timeout,
            resource="movie metadata",
        )
