from .base import BaseProvider
from .plex import PlexProvider
from .demo import DemoProvider
from .imdb import IMDbClient
from .plex_tv import PlexTvClient
from .factory import ProviderFactory

__all__ = [
    "BaseProvider",
    "PlexProvider",
    "DemoProvider",
    "IMDbClient",
    "PlexTvClient",
    "ProviderFactory"
]
