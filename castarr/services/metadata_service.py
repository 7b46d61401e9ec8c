"""
Metadata fetcher for the selected session's content.

One pass of protocol fallback per request, no retry: the user retries by
re-selecting. A newer request cancels and supersedes the one in flight.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from ..core.exceptions import PlexError
from ..providers.base import BaseProvider
from ..schemas.metadata import MovieMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetadataState:
    rating_key: Optional[str] = None
    metadata: Optional[MovieMetadata] = None
    is_loading: bool = False
    error_message: Optional[str] = None


class MetadataFetcher:

    def __init__(self, provider_getter: Callable[[], BaseProvider]):
        self._provider_getter = provider_getter
        self._state = MetadataState()
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def state(self) -> MetadataState:
        return self._state

    async def fetch(self, rating_key: str) -> MetadataState:
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling in-flight metadata fetch")
            self._task.cancel()

        self._generation += 1
        task = asyncio.create_task(self._perform_fetch(rating_key, self._generation))
        self._task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not task.cancelled():
            # Unexpected failures propagate to the caller
            task.result()
        return self._state

    def clear(self) -> None:
        """Drop displayed metadata, e.g. when no session is selected"""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._state = MetadataState()

    async def _perform_fetch(self, rating_key: str, generation: int) -> None:
        def publish(**changes):
            if generation == self._generation:
                self._state = replace(self._state, **changes)

        publish(rating_key=rating_key, is_loading=True)
        logger.info(f"Loading metadata for {rating_key}")

        try:
            response = await self._provider_getter().get_movie_metadata(rating_key)
            movie = response.first
            if movie is None:
                logger.warning(f"No metadata returned for {rating_key}")
            publish(metadata=movie, is_loading=False, error_message=None)
        except PlexError as e:
            logger.error(f"Metadata fetch for {rating_key} failed: {e}")
            publish(metadata=None, is_loading=False, error_message=e.user_message)
        finally:
            if self._state.is_loading:
                publish(is_loading=False)
