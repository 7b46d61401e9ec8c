"""
Error taxonomy shared by the transport, providers and services.
Every error carries the message shown to the user.
"""
from enum import Enum
from typing import Optional


class PlexError(Exception):
    message = "Invalid response from server"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def user_message(self) -> str:
        return str(self)


class NetworkReason(str, Enum):
    connection_lost = "connection_lost"
    not_connected = "not_connected"
    cannot_connect = "cannot_connect"
    timed_out = "timed_out"
    other = "other"


TRANSIENT_REASONS = frozenset({
    NetworkReason.connection_lost,
    NetworkReason.not_connected,
    NetworkReason.cannot_connect,
    NetworkReason.timed_out,
})


class NetworkError(PlexError):
    message = "A network error occurred"

    def __init__(self, reason: NetworkReason = NetworkReason.other, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or f"Network error: {reason.value.replace('_', ' ')}")

    @property
    def is_transient(self) -> bool:
        return self.reason in TRANSIENT_REASONS


class InvalidURL(PlexError):
    message = "Invalid URL"


class InvalidToken(PlexError):
    message = "Invalid or expired token"


class NotAuthenticated(PlexError):
    message = "Not authenticated. Please log in first."


class AuthTimeout(PlexError):
    message = "Authentication timeout. Please try again."


class DecodeError(PlexError):
    message = "Invalid response from server"


class ValidationError(PlexError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Validation error: {detail}")


class ServiceError(PlexError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error: {status_code}")
