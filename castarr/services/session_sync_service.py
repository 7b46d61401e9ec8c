"""
Session synchronizer: keeps an ordered snapshot of active sessions and a
selection that follows the same content across refreshes.

State is published as a single immutable SessionState, so readers never see
a new snapshot paired with a stale selection.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from .ownership import is_owned_session, prioritize_sessions
from ..core.config import settings
from ..core.exceptions import NetworkError, PlexError, ValidationError
from ..providers.base import BaseProvider
from ..schemas.auth import AccountIdentity
from ..schemas.session import SessionsContainer, TrackSession, VideoSession

logger = logging.getLogger(__name__)

NO_SELECTION = 0


@dataclass(frozen=True)
class SessionState:
    snapshot: Optional[SessionsContainer] = None
    video_sessions: Tuple[VideoSession, ...] = ()
    selected_index: int = NO_SELECTION
    is_loading: bool = False
    error_message: Optional[str] = None
    last_updated: Optional[datetime] = None

    @property
    def track_sessions(self) -> Tuple[TrackSession, ...]:
        return tuple(self.snapshot.track) if self.snapshot else ()

    @property
    def selected_session(self) -> Optional[VideoSession]:
        if 0 <= self.selected_index < len(self.video_sessions):
            return self.video_sessions[self.selected_index]
        return None


def reconcile_selection(
    sessions: Sequence[VideoSession],
    anchor_id: Optional[str],
    current_index: int,
    identity: AccountIdentity,
) -> int:
    """Pick the selection index for a freshly ordered session list.

    Precedence: empty list -> sentinel; the previously selected content at its
    new position; the first owned session; the old index clamped into range.
    """
    if not sessions:
        return NO_SELECTION

    if anchor_id is not None:
        for index, session in enumerate(sessions):
            if session.id == anchor_id:
                return index

    for index, session in enumerate(sessions):
        if is_owned_session(session.user, identity):
            return index

    if current_index >= len(sessions):
        return max(len(sessions) - 1, 0)
    return max(current_index, 0)


class SessionSynchronizer:
    """Owns the session snapshot and selection; mutated only via refresh/select"""

    def __init__(
        self,
        provider_getter: Callable[[], BaseProvider],
        identity_getter: Callable[[], AccountIdentity],
        max_retries: int = settings.sessions_max_retries,
        backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._provider_getter = provider_getter
        self._identity_getter = identity_getter
        self.max_retries = max_retries
        self.backoff = backoff
        self._sleep = sleep
        self._state = SessionState()
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    async def refresh(self) -> SessionState:
        """Fetch a new snapshot, superseding any refresh already in flight"""
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling in-flight sessions refresh")
            self._task.cancel()

        self._generation += 1
        task = asyncio.create_task(self._perform_refresh(self._generation))
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

    async def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})

    def select_session(self, index: int) -> SessionState:
        sessions = self._state.video_sessions
        if not 0 <= index < len(sessions):
            raise ValidationError(f"Session index {index} out of range")
        self._state = replace(self._state, selected_index=index)
        logger.info(f"Selected session {index}: {sessions[index].title}")
        return self._state

    def apply_identity_change(self) -> SessionState:
        """Re-rank the current snapshot after the account identity changed"""
        if self._state.snapshot is not None:
            self._apply_snapshot(self._state.snapshot, self._selected_id(), error_message=self._state.error_message,
                                 is_loading=self._state.is_loading, touch=False)
        return self._state

    def reset(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._state = SessionState()

    def _selected_id(self) -> Optional[str]:
        session = self._state.selected_session
        return session.id if session else None

    def _publish(self, generation: int, **changes) -> None:
        # A superseded refresh must not overwrite the state of its successor
        if generation != self._generation:
            return
        self._state = replace(self._state, **changes)

    def _apply_snapshot(
        self,
        snapshot: SessionsContainer,
        anchor_id: Optional[str],
        error_message: Optional[str] = None,
        is_loading: bool = False,
        touch: bool = True,
    ) -> None:
        identity = self._identity_getter()
        ordered: List[VideoSession] = prioritize_sessions(snapshot.video, identity)
        index = reconcile_selection(ordered, anchor_id, self._state.selected_index, identity)
        self._state = SessionState(
            snapshot=snapshot,
            video_sessions=tuple(ordered),
            selected_index=index,
            is_loading=is_loading,
            error_message=error_message,
            last_updated=datetime.utcnow() if touch else self._state.last_updated,
        )

    async def _perform_refresh(self, generation: int) -> None:
        self._publish(generation, is_loading=True)
        last_error: Optional[PlexError] = None

        try:
            for attempt in range(1, self.max_retries + 1):
                try:
                    snapshot = await self._provider_getter().get_sessions()
                except NetworkError as e:
                    last_error = e
                    if e.is_transient and attempt < self.max_retries:
                        delay = attempt * self.backoff
                        logger.warning(
                            f"Network error on attempt {attempt}/{self.max_retries}: {e}. "
                            f"Retrying in {delay:g} second(s)..."
                        )
                        await self._sleep(delay)
                        continue
                    break
                except PlexError as e:
                    last_error = e
                    break
                else:
                    if generation == self._generation:
                        # Anchor is the selection at apply time, not at start
                        self._apply_snapshot(snapshot, self._selected_id())
                        logger.info(
                            f"Sessions refreshed: {len(self._state.video_sessions)} video, "
                            f"{len(snapshot.track)} track, selected index {self._state.selected_index}"
                        )
                    return

            logger.error(f"Sessions fetch failed: {last_error}")
            self._publish(
                generation,
                is_loading=False,
                error_message=last_error.user_message if last_error else None,
            )
        except asyncio.CancelledError:
            logger.info("Sessions fetch cancelled")
            raise
        finally:
            if self._state.is_loading:
                self._publish(generation, is_loading=False)
