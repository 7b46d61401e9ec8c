from fastapi import APIRouter, Depends, HTTPException

from ..deps import build_state_response, get_companion_service, http_error
from ...core.exceptions import PlexError
from ...schemas.state import CompanionStateResponse, SelectSessionRequest
from ...services.companion_service import CompanionService

router = APIRouter()


@router.get("/state", response_model=CompanionStateResponse)
async def get_state(service: CompanionService = Depends(get_companion_service)):
    """Current sessions, selection, metadata and login state"""
    return build_state_response(service)


@router.post("/sessions/refresh", response_model=CompanionStateResponse)
async def refresh_sessions(service: CompanionService = Depends(get_companion_service)):
    if not service.is_logged_in:
        raise HTTPException(status_code=401, detail="Not authenticated. Please log in first.")
    await service.refresh()
    return build_state_response(service)


@router.post("/sessions/select", response_model=CompanionStateResponse)
async def select_session(
    request: SelectSessionRequest,
    service: CompanionService = Depends(get_companion_service)
):
    try:
        await service.select_session(request.index)
    except PlexError as e:
        raise http_error(e)
    return build_state_response(service)
