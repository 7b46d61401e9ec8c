from .auth_service import AuthService
from .companion_service import CompanionService
from .metadata_service import MetadataFetcher, MetadataState
from .session_sync_service import SessionState, SessionSynchronizer

__all__ = [
    "AuthService",
    "CompanionService",
    "MetadataFetcher",
    "MetadataState",
    "SessionState",
    "SessionSynchronizer"
]
