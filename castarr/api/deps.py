from typing import Optional

from fastapi import HTTPException, status

from ..core.exceptions import (
    AuthTimeout,
    InvalidToken,
    NotAuthenticated,
    PlexError,
    ValidationError,
)
from ..core.settings_store import create_settings_store
from ..schemas.state import (
    CompanionStateResponse,
    LoginStateResponse,
    MetadataStateResponse,
    SessionStateResponse,
)
from ..services.companion_service import CompanionService

_companion_service: Optional[CompanionService] = None


def get_companion_service() -> CompanionService:
    """Process-wide companion service, created on first use"""
    global _companion_service
    if _companion_service is None:
        _companion_service = CompanionService(create_settings_store())
    return _companion_service


def http_error(e: PlexError) -> HTTPException:
    """Translate a core error into the matching HTTP response"""
    if isinstance(e, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, (InvalidToken, NotAuthenticated)):
        code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(e, AuthTimeout):
        code = status.HTTP_408_REQUEST_TIMEOUT
    else:
        code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=e.user_message)


def build_state_response(service: CompanionService) -> CompanionStateResponse:
    snapshot = service.snapshot()
    sessions = snapshot["sessions"]
    metadata = snapshot["metadata"]
    login = snapshot["login"]

    return CompanionStateResponse(
        is_logged_in=snapshot["is_logged_in"],
        is_demo_mode=snapshot["is_demo_mode"],
        is_loading=snapshot["is_loading"],
        error_message=snapshot["error_message"],
        sessions=SessionStateResponse(
            video_sessions=list(sessions.video_sessions),
            track_sessions=list(sessions.track_sessions),
            selected_index=sessions.selected_index,
            selected_session=sessions.selected_session,
            other_active_video_sessions_count=max(len(sessions.video_sessions) - 1, 0),
            is_loading=sessions.is_loading,
            error_message=sessions.error_message,
            last_updated=sessions.last_updated,
        ),
        metadata=MetadataStateResponse(
            rating_key=metadata.rating_key,
            metadata=metadata.metadata,
            is_loading=metadata.is_loading,
            error_message=metadata.error_message,
        ),
        login=LoginStateResponse(
            pin_id=login.pin_id,
            code=login.code,
            auth_url=login.auth_url,
            is_polling=login.is_polling,
            error_message=login.error_message,
        ),
        pending_actor=snapshot["pending_actor"],
    )
