from abc import ABC, abstractmethod

from ..schemas.metadata import MovieMetadataContainer
from ..schemas.server import ActivitiesContainer, ServerCapabilities
from ..schemas.session import SessionsContainer


class BaseProvider(ABC):
    """Read path into a media server; live and demo sources share this contract"""

    @abstractmethod
    async def get_capabilities(self) -> ServerCapabilities:
        """Get server identity and feature flags"""
        pass

    @abstractmethod
    async def get_activities(self) -> ActivitiesContainer:
        """Get background activities running on the server"""
        pass

    @abstractmethod
    async def get_sessions(self) -> SessionsContainer:
        """Get a snapshot of currently playing sessions"""
        pass

    @abstractmethod
    async def get_movie_metadata(self, rating_key: str) -> MovieMetadataContainer:
        """Get rich metadata for one content item"""
        pass
