"""
PIN-based sign-in against plex.tv
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from .ownership import normalized_identifier
from ..core.config import settings
from ..core.exceptions import AuthTimeout, PlexError
from ..providers.plex_tv import PlexTvClient
from ..schemas.auth import AccountIdentity, Credential, PinResponse

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(
        self,
        plex_tv: PlexTvClient,
        poll_interval: float = settings.pin_poll_interval,
        max_attempts: int = settings.pin_poll_max_attempts,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.plex_tv = plex_tv
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def create_pairing(self) -> Tuple[PinResponse, str]:
        """Create a PIN and the URL where the user approves it"""
        pin = await self.plex_tv.create_pin()
        return pin, self.plex_tv.auth_url(pin.code)

    async def poll_for_token(self, pin_id: int) -> str:
        """Poll the PIN until it carries a token; failures are logged and retried"""
        for attempt in range(1, self.max_attempts + 1):
            try:
                pin = await self.plex_tv.check_pin(pin_id)
            except PlexError as e:
                logger.warning(f"Error checking PIN status (attempt {attempt}): {e}")
            else:
                if pin.is_authenticated:
                    logger.info("Authentication successful!")
                    return pin.auth_token

            if attempt < self.max_attempts:
                await self._sleep(self.poll_interval)

        raise AuthTimeout()

    async def fetch_account_identity(self, token: str) -> Optional[AccountIdentity]:
        """Best-effort account lookup; None when it fails"""
        try:
            account = await self.plex_tv.get_account(token)
        except PlexError as e:
            logger.warning(f"Failed to fetch Plex account info: {e}")
            return None

        return AccountIdentity(
            user_id=account.id,
            uuid=account.uuid.lower() if account.uuid else None,
            email=normalized_identifier(account.email) or None,
            username=normalized_identifier(account.username),
        )

    async def start_login(self, on_auth_url: Optional[Callable[[str], None]] = None) -> Credential:
        """Run the whole handshake: PIN, authorization URL, polling, account lookup"""
        pin, auth_url = await self.create_pairing()
        if on_auth_url is not None:
            on_auth_url(auth_url)

        token = await self.poll_for_token(pin.id)
        identity = await self.fetch_account_identity(token)
        return Credential(token=token, identity=identity or AccountIdentity())
