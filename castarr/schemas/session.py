from pydantic import BaseModel
from typing import List, Optional

from .metadata import MovieTechnicalInfo


class SessionUser(BaseModel):
    id: int = 0
    title: str = ""
    thumb: Optional[str] = None
    uuid: Optional[str] = None
    email: Optional[str] = None

    class Config:
        frozen = True


class SessionPlayer(BaseModel):
    address: Optional[str] = None
    device: Optional[str] = None
    platform: Optional[str] = None
    product: Optional[str] = None
    state: Optional[str] = None
    title: Optional[str] = None
    version: Optional[str] = None

    class Config:
        frozen = True


class TranscodeSession(BaseModel):
    key: Optional[str] = None
    progress: Optional[float] = None
    speed: Optional[float] = None
    duration: Optional[int] = None
    video_decision: Optional[str] = None
    audio_decision: Optional[str] = None
    container: Optional[str] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None

    class Config:
        frozen = True


class VideoSession(BaseModel):
    """An active video stream; `id` is the rating key"""
    id: str = ""
    session_key: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None
    duration: int = 0
    view_offset: int = 0
    user: Optional[SessionUser] = None
    player: Optional[SessionPlayer] = None
    transcode_session: Optional[TranscodeSession] = None
    technical: Optional[MovieTechnicalInfo] = None

    class Config:
        frozen = True

    @property
    def progress_percent(self) -> float:
        if self.duration > 0:
            return (self.view_offset / self.duration) * 100
        return 0.0


class TrackSession(BaseModel):
    id: str = ""
    session_key: Optional[str] = None
    title: Optional[str] = None
    parent_title: Optional[str] = None  # Album
    grandparent_title: Optional[str] = None  # Artist
    duration: int = 0
    view_offset: int = 0
    user: Optional[SessionUser] = None
    player: Optional[SessionPlayer] = None

    class Config:
        frozen = True


class SessionsContainer(BaseModel):
    size: int = 0
    video: List[VideoSession] = []
    track: List[TrackSession] = []

    class Config:
        frozen = True
