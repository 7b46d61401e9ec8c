"""
Companion service: the single owner of credential, session and metadata state.
The HTTP layer talks to the core only through this class.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .auth_service import AuthService
from .metadata_service import MetadataFetcher, MetadataState
from .ownership import is_owned_session, normalized_identifier
from .session_sync_service import SessionState, SessionSynchronizer
from ..core.config import settings
from ..core.exceptions import InvalidToken, PlexError, ValidationError
from ..core.settings_store import SettingsStore
from ..core.transport import Transport
from ..providers.base import BaseProvider
from ..providers.demo import DEMO_SERVER_IP, DEMO_TOKEN, is_demo_user
from ..providers.factory import ProviderFactory
from ..providers.imdb import IMDbClient
from ..providers.plex_tv import PlexTvClient
from ..schemas.auth import LoginStartResponse, PinResponse
from ..schemas.imdb import IMDbName
from ..schemas.server import ActivitiesContainer, ServerCapabilities
from ..schemas.session import VideoSession

logger = logging.getLogger(__name__)


def is_valid_ip_address(ip: str) -> bool:
    parts = ip.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not part.isdigit() or not 0 <= int(part) <= 255:
            return False
    return True


@dataclass(frozen=True)
class LoginState:
    pin_id: Optional[int] = None
    code: Optional[str] = None
    auth_url: Optional[str] = None
    is_polling: bool = False
    error_message: Optional[str] = None


class ActorSelection:
    """Actor chosen from the cast list, kept until the detail view is dismissed"""

    def __init__(self):
        self._name = ""

    @property
    def name(self) -> Optional[str]:
        return self._name or None

    def select(self, name: str) -> None:
        self._name = name.strip()
        logger.info(f"Selected actor: {self._name}")

    def clear(self) -> None:
        self._name = ""


class CompanionService:

    def __init__(
        self,
        store: SettingsStore,
        plex_tv: Optional[PlexTvClient] = None,
        imdb_client: Optional[IMDbClient] = None,
        transport: Optional[Transport] = None,
        auth_service: Optional[AuthService] = None,
        refresh_interval: float = settings.sessions_refresh_interval,
    ):
        self.store = store
        self.settings = store.load()
        self.transport = transport
        self.imdb_client = imdb_client or IMDbClient()
        self.auth_service = auth_service or AuthService(plex_tv or PlexTvClient())
        self.refresh_interval = refresh_interval

        self.is_demo_mode = False
        self.is_logged_in = False
        self.server_capabilities: Optional[ServerCapabilities] = None
        self.activities: Optional[ActivitiesContainer] = None
        self.error_message: Optional[str] = None
        self.login_state = LoginState()
        self.actor_selection = ActorSelection()

        self._provider: Optional[BaseProvider] = None
        self.synchronizer = SessionSynchronizer(self.get_provider, lambda: self.settings.identity)
        self.metadata = MetadataFetcher(self.get_provider)

        self._login_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._validity_task: Optional[asyncio.Task] = None
        self.is_running = False

        if is_demo_user(self.settings.username) and self.settings.plex_token:
            logger.info("Demo mode detected on init")
            self.is_demo_mode = True
            self.is_logged_in = True
        elif self.settings.has_valid_login:
            logger.info(f"Found saved credentials for user: {self.settings.username or '<unknown>'}")
            self.is_logged_in = True
        else:
            logger.info("No valid saved credentials found")

    # Providers
    def get_provider(self) -> BaseProvider:
        if self._provider is None:
            self._provider = ProviderFactory.create_provider(
                self.settings,
                demo=self.is_demo_mode,
                transport=self.transport,
                imdb_client=self.imdb_client,
            )
        return self._provider

    def _reset_provider(self) -> None:
        self._provider = None

    # Settings
    def save_settings(self) -> None:
        self.store.save(self.settings)

    def update_server_ip(self, ip: str) -> None:
        ip = ip.strip()
        if not is_valid_ip_address(ip):
            raise ValidationError("Please enter a valid IP address (e.g., 192.168.1.100)")
        self.settings.server_ip = ip
        self.save_settings()
        self._reset_provider()
        logger.info(f"Server IP updated to {ip}")

    # Derived session views
    @property
    def session_state(self) -> SessionState:
        return self.synchronizer.state

    @property
    def metadata_state(self) -> MetadataState:
        return self.metadata.state

    @property
    def active_video_sessions(self):
        return self.session_state.video_sessions

    @property
    def active_track_sessions(self):
        return self.session_state.track_sessions

    @property
    def selected_video_session(self) -> Optional[VideoSession]:
        return self.session_state.selected_session

    @property
    def has_active_sessions(self) -> bool:
        return bool(self.active_video_sessions)

    @property
    def other_active_video_sessions_count(self) -> int:
        return max(len(self.active_video_sessions) - 1, 0)

    def is_owned(self, session: VideoSession) -> bool:
        return is_owned_session(session.user, self.settings.identity)

    # Sessions and metadata
    async def refresh(self, load_metadata: bool = True) -> SessionState:
        state = await self.synchronizer.refresh()
        if load_metadata:
            await self.sync_metadata()
        return state

    async def select_session(self, index: int) -> SessionState:
        state = self.synchronizer.select_session(index)
        await self.sync_metadata()
        return state

    async def fetch_metadata(self, rating_key: str) -> MetadataState:
        return await self.metadata.fetch(rating_key)

    async def sync_metadata(self) -> MetadataState:
        """Load metadata for the selected session if it is not already showing"""
        selected = self.selected_video_session
        if selected is None:
            self.metadata.clear()
            return self.metadata.state
        current = self.metadata.state
        if current.rating_key == selected.id and (current.metadata is not None or current.is_loading):
            return current
        return await self.metadata.fetch(selected.id)

    # Actor detail
    def select_actor(self, name: str) -> None:
        self.actor_selection.select(name)

    def dismiss_actor(self) -> None:
        self.actor_selection.clear()

    async def get_actor_details(self) -> Optional[IMDbName]:
        name = self.actor_selection.name
        movie = self.metadata.state.metadata
        if not name or movie is None or not movie.imdb_id:
            return None
        return await self.imdb_client.find_person_in_title(movie.imdb_id, name)

    # Server resources
    async def fetch_capabilities(self) -> ServerCapabilities:
        self.server_capabilities = await self.get_provider().get_capabilities()
        return self.server_capabilities

    async def fetch_activities(self) -> ActivitiesContainer:
        self.activities = await self.get_provider().get_activities()
        return self.activities

    async def check_token_validity(self) -> None:
        """Probe the saved token; only a confirmed 401 signs the user out"""
        if self.is_demo_mode:
            logger.info("Demo mode: skipping token validation")
            return
        if not self.settings.has_valid_login:
            self.is_logged_in = False
            return

        self.is_logged_in = True
        try:
            await self.fetch_capabilities()
        except InvalidToken:
            logger.warning("Saved token rejected by server, signing out")
            self.is_logged_in = False
            self.settings.plex_token = ""
            self.settings.token_expiration_date = None
            self.save_settings()
            self._reset_provider()
            return
        except PlexError as e:
            logger.warning(f"Token validation failed but keeping token: {e}")
            return

        await self._store_account_info(self.settings.plex_token)

    # Authentication
    async def begin_login(self) -> LoginStartResponse:
        """Create a PIN, return the approval URL and keep polling in the background"""
        await self.cancel_login()
        self.error_message = None
        try:
            pin, auth_url = await self.auth_service.create_pairing()
        except PlexError as e:
            logger.error(f"OAuth login failed: {e}")
            self.login_state = LoginState(error_message=e.user_message)
            self.error_message = e.user_message
            raise

        self.login_state = LoginState(pin_id=pin.id, code=pin.code, auth_url=auth_url, is_polling=True)
        self._login_task = asyncio.create_task(self._complete_login(pin))
        return LoginStartResponse(pin_id=pin.id, code=pin.code, auth_url=auth_url)

    async def login(self) -> bool:
        """Begin the handshake and wait for it to finish; False on cancel or failure"""
        await self.begin_login()
        task = self._login_task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        return self.is_logged_in and not self.is_demo_mode

    async def cancel_login(self) -> None:
        task = self._login_task
        if task is not None and not task.done():
            logger.info("Login polling cancelled")
            task.cancel()
            await asyncio.wait({task})
        self._login_task = None
        # A task cancelled before its first step never clears the flag itself
        self.login_state = replace(self.login_state, is_polling=False)

    async def _complete_login(self, pin: PinResponse) -> None:
        try:
            token = await self.auth_service.poll_for_token(pin.id)
        except asyncio.CancelledError:
            self.login_state = replace(self.login_state, is_polling=False)
            raise
        except PlexError as e:
            logger.error(f"OAuth login failed: {e}")
            self.login_state = replace(self.login_state, is_polling=False, error_message=e.user_message)
            self.error_message = e.user_message
            return

        self.settings.plex_token = token
        self.settings.username = ""
        self.settings.plex_user_id = None
        self.settings.token_expiration_date = None
        self.save_settings()
        self.is_logged_in = True
        self.is_demo_mode = False
        self._reset_provider()
        self.login_state = replace(self.login_state, is_polling=False)

        await self._store_account_info(token)

    async def _store_account_info(self, token: str) -> None:
        identity = await self.auth_service.fetch_account_identity(token)
        if identity is None:
            return
        self.settings.username = identity.username
        self.settings.plex_user_id = identity.user_id
        self.settings.plex_account_uuid = identity.uuid
        self.settings.plex_account_email = identity.email
        self.save_settings()
        self.synchronizer.apply_identity_change()

    async def login_demo(self, email: str) -> bool:
        self.error_message = None
        if not is_demo_user(email):
            self.error_message = "Invalid demo account credentials"
            return False

        logger.info(f"Demo mode activated for user: {email}")
        await self.cancel_login()
        normalized_email = normalized_identifier(email)
        self.is_demo_mode = True
        self.settings.plex_token = DEMO_TOKEN
        self.settings.username = normalized_email
        self.settings.plex_user_id = 0
        self.settings.plex_account_uuid = None
        self.settings.plex_account_email = normalized_email
        self.settings.server_ip = DEMO_SERVER_IP
        self.settings.token_expiration_date = None
        self.save_settings()
        self.is_logged_in = True
        self._reset_provider()
        self.synchronizer.reset()
        self.metadata.clear()

        provider = self.get_provider()
        self.server_capabilities = await provider.get_capabilities()
        self.activities = await provider.get_activities()
        await self.refresh()
        return True

    async def logout(self) -> None:
        await self.cancel_login()
        self.settings.clear_credential()
        self.save_settings()
        self.is_logged_in = False
        self.is_demo_mode = False
        self.server_capabilities = None
        self.activities = None
        self.login_state = LoginState()
        self.actor_selection.clear()
        self.synchronizer.reset()
        self.metadata.clear()
        self._reset_provider()
        logger.info("User logged out and credentials cleared")

    # Background polling
    async def start(self) -> None:
        if self.is_running:
            logger.warning("Sessions polling already running")
            return
        self.is_running = True
        if self.is_logged_in and not self.is_demo_mode:
            self._validity_task = asyncio.create_task(self.check_token_validity())
        if self.refresh_interval > 0:
            self._poll_task = asyncio.create_task(self._poll_loop())
            logger.info("Started background sessions polling")

    async def stop(self) -> None:
        self.is_running = False
        if self._poll_task:
            self._poll_task.cancel()
            await asyncio.wait({self._poll_task})
        if self._validity_task and not self._validity_task.done():
            self._validity_task.cancel()
            await asyncio.wait({self._validity_task})
        await self.cancel_login()
        await self.synchronizer.cancel()
        logger.info("Stopped background sessions polling")

    async def _poll_loop(self) -> None:
        """Refresh sessions on a fixed interval while logged in"""
        while self.is_running:
            try:
                if self.is_logged_in:
                    await self.refresh()
                await asyncio.sleep(self.refresh_interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in sessions polling loop: {e}")
                await asyncio.sleep(5)

    def snapshot(self) -> Dict[str, Any]:
        """Everything the presentation layer observes, read in one pass"""
        sessions = self.session_state
        metadata = self.metadata_state
        return {
            "is_logged_in": self.is_logged_in,
            "is_demo_mode": self.is_demo_mode,
            "is_loading": sessions.is_loading or metadata.is_loading or self.login_state.is_polling,
            "error_message": sessions.error_message or metadata.error_message or self.error_message,
            "sessions": sessions,
            "metadata": metadata,
            "login": self.login_state,
            "pending_actor": self.actor_selection.name,
        }
