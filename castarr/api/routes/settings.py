from fastapi import APIRouter, Depends

from ..deps import get_companion_service, http_error
from ...core.exceptions import PlexError
from ...schemas.auth import ServerSettingsRequest, ServerSettingsResponse
from ...services.companion_service import CompanionService

router = APIRouter()


def _settings_response(service: CompanionService) -> ServerSettingsResponse:
    return ServerSettingsResponse(
        server_ip=service.settings.server_ip,
        username=service.settings.username,
        is_logged_in=service.is_logged_in,
        is_demo_mode=service.is_demo_mode,
    )


@router.get("", response_model=ServerSettingsResponse)
async def get_settings(service: CompanionService = Depends(get_companion_service)):
    return _settings_response(service)


@router.put("", response_model=ServerSettingsResponse)
async def update_settings(
    request: ServerSettingsRequest,
    service: CompanionService = Depends(get_companion_service)
):
    try:
        service.update_server_ip(request.server_ip)
    except PlexError as e:
        raise http_error(e)
    return _settings_response(service)
