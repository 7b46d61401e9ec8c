from pydantic import BaseModel, Field
from typing import Optional, Tuple
from datetime import datetime


class PinResponse(BaseModel):
    id: int
    code: str
    auth_token: Optional[str] = Field(None, alias="authToken")
    expires_at: Optional[str] = Field(None, alias="expiresAt")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.auth_token)


class AccountResponse(BaseModel):
    id: int
    username: str = ""
    email: Optional[str] = None
    uuid: Optional[str] = None
    title: Optional[str] = None

    class Config:
        extra = "ignore"


class AccountIdentity(BaseModel):
    """Identity fields compared against session users to decide ownership"""
    user_id: Optional[int] = None
    uuid: Optional[str] = None
    email: Optional[str] = None
    username: str = ""

    class Config:
        frozen = True


class Credential(BaseModel):
    token: str
    identity: AccountIdentity = AccountIdentity()

    class Config:
        frozen = True


class ServerConnection(BaseModel):
    host: str
    port: int = 32400
    protocols: Tuple[str, ...] = ("https", "http")

    class Config:
        frozen = True

    def url(self, protocol: str, path: str) -> str:
        return f"{protocol}://{self.host}:{self.port}{path}"


class PlexSettings(BaseModel):
    """The persisted settings blob"""
    server_ip: str = ""
    plex_token: str = ""
    username: str = ""
    plex_user_id: Optional[int] = None
    plex_account_uuid: Optional[str] = None
    plex_account_email: Optional[str] = None
    token_expiration_date: Optional[datetime] = None

    @property
    def has_valid_login(self) -> bool:
        return bool(self.server_ip) and bool(self.plex_token)

    @property
    def identity(self) -> AccountIdentity:
        return AccountIdentity(
            user_id=self.plex_user_id,
            uuid=self.plex_account_uuid,
            email=self.plex_account_email,
            username=self.username,
        )

    @property
    def credential(self) -> Optional[Credential]:
        if not self.plex_token:
            return None
        return Credential(token=self.plex_token, identity=self.identity)

    def connection(self, port: int = 32400) -> Optional[ServerConnection]:
        if not self.server_ip:
            return None
        return ServerConnection(host=self.server_ip, port=port)

    def clear_credential(self) -> None:
        self.plex_token = ""
        self.username = ""
        self.plex_user_id = None
        self.plex_account_uuid = None
        self.plex_account_email = None
        self.token_expiration_date = None


class LoginStartResponse(BaseModel):
    pin_id: int
    code: str
    auth_url: str


class DemoLoginRequest(BaseModel):
    email: str


class ServerSettingsRequest(BaseModel):
    server_ip: str


class ServerSettingsResponse(BaseModel):
    server_ip: str
    username: str
    is_logged_in: bool
    is_demo_mode: bool
