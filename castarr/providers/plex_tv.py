"""
Client for the plex.tv identity service: PIN pairing and account lookup
"""
import logging
from typing import Dict, Optional
from urllib.parse import quote, urlencode

from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..core.exceptions import DecodeError, InvalidToken, ServiceError
from ..core.transport import RawResponse, Transport
from ..schemas.auth import AccountResponse, PinResponse

logger = logging.getLogger(__name__)


def _decode(model, response: RawResponse):
    try:
        return model.model_validate(response.json())
    except PydanticValidationError as e:
        raise DecodeError(f"Unexpected plex.tv payload: {e.error_count()} errors") from e


class PlexTvClient:

    def __init__(
        self,
        client_id: Optional[str] = None,
        product: Optional[str] = None,
        base_url: Optional[str] = None,
        auth_app_url: Optional[str] = None,
        transport: Optional[Transport] = None,
    ):
        self.client_id = client_id or settings.plex_client_id
        self.product = product or settings.plex_product
        self.base_url = (base_url or settings.plex_tv_url).rstrip("/")
        self.auth_app_url = auth_app_url or settings.plex_auth_app_url
        self.transport = transport or Transport(timeout=settings.auth_timeout)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "X-Plex-Product": self.product,
            "X-Plex-Client-Identifier": self.client_id,
        }
        if token:
            headers["X-Plex-Token"] = token
        return headers

    async def create_pin(self) -> PinResponse:
        """Request a one-time pairing code"""
        logger.info("Generating PIN...")
        response = await self.transport.request(
            "POST",
            f"{self.base_url}/api/v2/pins",
            headers=self._headers(),
            body={"strong": "true"},
        )
        logger.debug(f"PIN response status: {response.status_code}")
        if response.status_code != 201:
            raise ServiceError(response.status_code)

        pin = _decode(PinResponse, response)
        logger.info(f"PIN generated: {pin.id}")
        return pin

    async def check_pin(self, pin_id: int) -> PinResponse:
        response = await self.transport.request(
            "GET",
            f"{self.base_url}/api/v2/pins/{pin_id}",
            headers=self._headers(),
        )
        if response.status_code != 200:
            raise ServiceError(response.status_code)
        return _decode(PinResponse, response)

    def auth_url(self, code: str) -> str:
        """URL the user opens to approve the pairing code"""
        params = {
            "clientID": self.client_id,
            "code": code,
            "context[device][product]": self.product,
        }
        return self.auth_app_url + urlencode(params, safe="[]", quote_via=quote)

    async def get_account(self, token: str) -> AccountResponse:
        response = await self.transport.request(
            "GET",
            f"{self.base_url}/api/v2/user",
            headers=self._headers(token),
        )
        if response.status_code == 401:
            raise InvalidToken()
        if response.status_code != 200:
            raise ServiceError(response.status_code)
        return _decode(AccountResponse, response)
