from pydantic_settings import BaseSettings
from typing import Optional
import uuid


class Settings(BaseSettings):
    app_name: str = "Castarr"
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"

    # Plex identity service
    plex_product: str = "Castarr"
    plex_client_id: Optional[str] = None
    plex_tv_url: str = "https://plex.tv"
    plex_auth_app_url: str = "https://app.plex.tv/auth#?"
    pin_poll_interval: float = 1.0
    pin_poll_max_attempts: int = 300

    # Plex media server
    plex_server_port: int = 32400
    data_timeout: float = 10.0
    auth_timeout: float = 15.0
    sessions_max_retries: int = 3
    sessions_refresh_interval: float = 10.0

    # Metadata/ratings service
    imdb_api_url: str = "https://api.imdbapi.dev"

    # Settings persistence
    settings_path: str = "castarr_settings.json"
    redis_url: Optional[str] = None
    secret_key: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "CASTARR_"
        case_sensitive = False

    def model_post_init(self, __context):
        if not self.plex_client_id:
            self.plex_client_id = str(uuid.uuid4())


settings = Settings()
