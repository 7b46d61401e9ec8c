from pydantic import BaseModel, Field
from typing import List, Optional


class ServerCapabilities(BaseModel):
    """Root `MediaContainer` of the server's `/` endpoint (JSON)"""
    size: int = 0
    allow_camera_upload: Optional[bool] = Field(None, alias="allowCameraUpload")
    allow_channel_access: Optional[bool] = Field(None, alias="allowChannelAccess")
    allow_media_deletion: Optional[bool] = Field(None, alias="allowMediaDeletion")
    allow_sharing: Optional[bool] = Field(None, alias="allowSharing")
    allow_sync: Optional[bool] = Field(None, alias="allowSync")
    allow_tuners: Optional[bool] = Field(None, alias="allowTuners")
    background_processing: Optional[bool] = Field(None, alias="backgroundProcessing")
    certificate: Optional[bool] = None
    companion_proxy: Optional[bool] = Field(None, alias="companionProxy")
    friendly_name: Optional[str] = Field(None, alias="friendlyName")
    version: Optional[str] = None
    platform: Optional[str] = None
    platform_version: Optional[str] = Field(None, alias="platformVersion")
    machine_identifier: Optional[str] = Field(None, alias="machineIdentifier")
    my_plex: Optional[bool] = Field(None, alias="myPlex")
    my_plex_username: Optional[str] = Field(None, alias="myPlexUsername")
    my_plex_signin_state: Optional[str] = Field(None, alias="myPlexSigninState")
    my_plex_subscription: Optional[bool] = Field(None, alias="myPlexSubscription")
    multiuser: Optional[bool] = None
    transcoder_audio: Optional[bool] = Field(None, alias="transcoderAudio")
    transcoder_video: Optional[bool] = Field(None, alias="transcoderVideo")
    transcoder_subtitles: Optional[bool] = Field(None, alias="transcoderSubtitles")
    transcoder_photo: Optional[bool] = Field(None, alias="transcoderPhoto")
    transcoder_active_video_sessions: Optional[int] = Field(None, alias="transcoderActiveVideoSessions")
    transcoder_video_resolutions: Optional[str] = Field(None, alias="transcoderVideoResolutions")
    transcoder_video_bitrates: Optional[str] = Field(None, alias="transcoderVideoBitrates")
    transcoder_video_qualities: Optional[str] = Field(None, alias="transcoderVideoQualities")
    livetv: Optional[int] = None
    photo_auto_tag: Optional[bool] = Field(None, alias="photoAutoTag")
    voice_search: Optional[bool] = Field(None, alias="voiceSearch")
    push_notifications: Optional[bool] = Field(None, alias="pushNotifications")

    class Config:
        frozen = True
        populate_by_name = True
        extra = "ignore"


class ActivityContext(BaseModel):
    library_section_id: Optional[str] = None

    class Config:
        frozen = True


class Activity(BaseModel):
    id: str = ""
    type: Optional[str] = None
    cancellable: Optional[int] = None
    user_id: Optional[int] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    progress: Optional[int] = None
    context: Optional[List[ActivityContext]] = None

    class Config:
        frozen = True


class ActivitiesContainer(BaseModel):
    size: int = 0
    activity: List[Activity] = []

    class Config:
        frozen = True
