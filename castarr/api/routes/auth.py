from fastapi import APIRouter, Depends, HTTPException

from ..deps import build_state_response, get_companion_service, http_error
from ...core.exceptions import PlexError
from ...schemas.auth import DemoLoginRequest, LoginStartResponse
from ...schemas.state import CompanionStateResponse
from ...services.companion_service import CompanionService

router = APIRouter()


@router.post("/login", response_model=LoginStartResponse)
async def start_login(service: CompanionService = Depends(get_companion_service)):
    """Start the PIN handshake; the client opens auth_url and polls /api/state"""
    try:
        return await service.begin_login()
    except PlexError as e:
        raise http_error(e)


@router.post("/cancel", response_model=CompanionStateResponse)
async def cancel_login(service: CompanionService = Depends(get_companion_service)):
    await service.cancel_login()
    return build_state_response(service)


@router.post("/demo", response_model=CompanionStateResponse)
async def demo_login(request: DemoLoginRequest, service: CompanionService = Depends(get_companion_service)):
    if not await service.login_demo(request.email):
        raise HTTPException(status_code=401, detail=service.error_message)
    return build_state_response(service)


@router.post("/logout")
async def logout(service: CompanionService = Depends(get_companion_service)):
    await service.logout()
    return {"message": "Logged out successfully"}
