from typing import Optional

from .base import BaseProvider
from .demo import DemoProvider
from .imdb import IMDbClient
from .plex import PlexProvider
from ..core.config import settings
from ..core.transport import Transport
from ..schemas.auth import PlexSettings


class ProviderFactory:
    @staticmethod
    def create_provider(
        plex_settings: PlexSettings,
        demo: bool = False,
        transport: Optional[Transport] = None,
        imdb_client: Optional[IMDbClient] = None,
    ) -> BaseProvider:
        """Create the provider matching the current login"""
        if demo:
            return DemoProvider(imdb_client=imdb_client)

        return PlexProvider(
            plex_settings.connection(settings.plex_server_port),
            plex_settings.plex_token,
            transport=transport,
        )
