from .auth import *
from .session import *
from .metadata import *
from .server import *
from .state import *
__all__ = [
    # Auth schemas
    "PinResponse",
    "AccountResponse",
    "AccountIdentity",
    "Credential",
    "ServerConnection",
    "PlexSettings",
    "LoginStartResponse",
    "DemoLoginRequest",
    "ServerSettingsRequest",
    "ServerSettingsResponse",

    # Session schemas
    "SessionUser",
    "SessionPlayer",
    "TranscodeSession",
    "VideoSession",
    "TrackSession",
    "SessionsContainer",

    # Metadata schemas
    "MovieTechnicalInfo",
    "MovieRole",
    "MovieRating",
    "MovieMetadata",
    "MovieMetadataContainer",
    "UltraBlurColors",

    # Server schemas
    "ServerCapabilities",
    "Activity",
    "ActivitiesContainer",

    # API state schemas
    "SessionStateResponse",
    "MetadataStateResponse",
    "LoginStateResponse",
    "CompanionStateResponse",
    "SelectSessionRequest",
    "ActorSelectionRequest"
]
