"""
Read-only client for the IMDb API (titles, credits, people). No credential required.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..core.exceptions import DecodeError, ServiceError
from ..core.transport import Transport
from ..schemas.imdb import IMDbCredit, IMDbCreditsResponse, IMDbName, IMDbSearchResponse, IMDbTitle

logger = logging.getLogger(__name__)


class IMDbClient:

    def __init__(self, base_url: Optional[str] = None, transport: Optional[Transport] = None):
        self.base_url = (base_url or settings.imdb_api_url).rstrip("/")
        self.transport = transport or Transport(timeout=settings.data_timeout)

    async def _get(self, path: str, model, params: Optional[dict] = None):
        response = await self.transport.request(
            "GET",
            f"{self.base_url}{path}",
            headers={"Accept": "application/json"},
            params=params,
        )
        if response.status_code != 200:
            logger.warning(f"IMDb request {path} failed: {response.status_code}")
            raise ServiceError(response.status_code)
        try:
            return model.model_validate(response.json())
        except PydanticValidationError as e:
            raise DecodeError(f"Unexpected IMDb payload for {path}") from e

    async def get_movie_details(self, imdb_id: str) -> IMDbTitle:
        return await self._get(f"/titles/{imdb_id}", IMDbTitle)

    async def get_movie_cast(self, imdb_id: str, limit: int = 20) -> List[IMDbCredit]:
        """Actors and actresses credited on a title, in billing order"""
        response = await self._get(
            f"/titles/{imdb_id}/credits",
            IMDbCreditsResponse,
            params={"categories": ["actor", "actress"], "pageSize": limit},
        )
        cast = [c for c in response.credits if c.name is not None]
        return cast[:limit]

    async def search_titles(self, query: str, limit: int = 10) -> List[IMDbTitle]:
        response = await self._get("/search/titles", IMDbSearchResponse, params={"query": query, "limit": limit})
        return response.titles[:limit]

    async def get_person(self, name_id: str) -> IMDbName:
        return await self._get(f"/names/{name_id}", IMDbName)

    async def find_person_in_title(self, imdb_id: str, actor_name: str) -> Optional[IMDbName]:
        """Resolve an actor shown in a title's cast to their IMDb person record"""
        wanted = actor_name.strip().lower()
        for credit in await self.get_movie_cast(imdb_id, limit=50):
            if credit.name.display_name.strip().lower() == wanted:
                return await self.get_person(credit.name.id)
        return None
