from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from .metadata import MovieMetadata
from .session import TrackSession, VideoSession


class SessionStateResponse(BaseModel):
    video_sessions: List[VideoSession] = []
    track_sessions: List[TrackSession] = []
    selected_index: int = 0
    selected_session: Optional[VideoSession] = None
    other_active_video_sessions_count: int = 0
    is_loading: bool = False
    error_message: Optional[str] = None
    last_updated: Optional[datetime] = None


class MetadataStateResponse(BaseModel):
    rating_key: Optional[str] = None
    metadata: Optional[MovieMetadata] = None
    is_loading: bool = False
    error_message: Optional[str] = None


class LoginStateResponse(BaseModel):
    pin_id: Optional[int] = None
    code: Optional[str] = None
    auth_url: Optional[str] = None
    is_polling: bool = False
    error_message: Optional[str] = None


class CompanionStateResponse(BaseModel):
    is_logged_in: bool
    is_demo_mode: bool
    is_loading: bool
    error_message: Optional[str] = None
    sessions: SessionStateResponse
    metadata: MetadataStateResponse
    login: LoginStateResponse
    pending_actor: Optional[str] = None


class SelectSessionRequest(BaseModel):
    index: int


class ActorSelectionRequest(BaseModel):
    name: str
