from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..deps import build_state_response, get_companion_service, http_error
from ...core.exceptions import PlexError
from ...schemas.imdb import IMDbName
from ...schemas.state import ActorSelectionRequest, CompanionStateResponse
from ...services.companion_service import CompanionService

router = APIRouter()


@router.post("/metadata/{rating_key}", response_model=CompanionStateResponse)
async def fetch_metadata(rating_key: str, service: CompanionService = Depends(get_companion_service)):
    """Load metadata for a rating key; failures are reported in the state, not as HTTP errors"""
    await service.fetch_metadata(rating_key)
    return build_state_response(service)


@router.post("/actor", response_model=Optional[IMDbName])
async def select_actor(
    request: ActorSelectionRequest,
    service: CompanionService = Depends(get_companion_service)
):
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Actor name is required")
    service.select_actor(request.name)
    try:
        return await service.get_actor_details()
    except PlexError as e:
        raise http_error(e)


@router.delete("/actor")
async def dismiss_actor(service: CompanionService = Depends(get_companion_service)):
    service.dismiss_actor()
    return {"message": "Actor dismissed"}
