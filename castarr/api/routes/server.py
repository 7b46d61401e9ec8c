from fastapi import APIRouter, Depends

from ..deps import get_companion_service, http_error
from ...core.exceptions import PlexError
from ...schemas.server import ActivitiesContainer, ServerCapabilities
from ...services.companion_service import CompanionService

router = APIRouter()


@router.get("/capabilities", response_model=ServerCapabilities)
async def get_capabilities(service: CompanionService = Depends(get_companion_service)):
    try:
        return await service.fetch_capabilities()
    except PlexError as e:
        raise http_error(e)


@router.get("/activities", response_model=ActivitiesContainer)
async def get_activities(service: CompanionService = Depends(get_companion_service)):
    try:
        return await service.fetch_activities()
    except PlexError as e:
        raise http_error(e)
