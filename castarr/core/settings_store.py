"""
Persistence for the settings blob (server address + credential).
A JSON file by default, or a Redis key when CASTARR_REDIS_URL is set.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis
from pydantic import ValidationError as PydanticValidationError

from .config import settings
from .encryption import TokenEncryption
from ..schemas.auth import PlexSettings

logger = logging.getLogger(__name__)


class SettingsStore(ABC):

    def __init__(self, encryption: Optional[TokenEncryption] = None):
        self.encryption = encryption

    @abstractmethod
    def _read(self) -> Optional[str]:
        pass

    @abstractmethod
    def _write(self, payload: str) -> None:
        pass

    def load(self) -> PlexSettings:
        """Load saved settings; a missing or corrupt blob yields defaults"""
        raw = self._read()
        if not raw:
            return PlexSettings()

        try:
            data: Dict[str, Any] = json.loads(raw)
            if self.encryption and data.get("plex_token"):
                data["plex_token"] = self.encryption.decrypt(data["plex_token"])
            return PlexSettings.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Stored settings are unreadable, starting fresh: {e}")
            return PlexSettings()

    def save(self, plex_settings: PlexSettings) -> None:
        data = plex_settings.model_dump(mode="json")
        if self.encryption and data.get("plex_token"):
            data["plex_token"] = self.encryption.encrypt(data["plex_token"])
        self._write(json.dumps(data))
        logger.debug("Settings saved")


class FileSettingsStore(SettingsStore):

    def __init__(self, path: str, encryption: Optional[TokenEncryption] = None):
        super().__init__(encryption)
        self.path = path

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading settings file {self.path}: {e}")
            return None

    def _write(self, payload: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        # Write-then-rename: readers only ever see a complete blob
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".castarr-settings-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class RedisSettingsStore(SettingsStore):

    def __init__(self, client: redis.Redis, key: str = "castarr:settings", encryption: Optional[TokenEncryption] = None):
        super().__init__(encryption)
        self.redis_client = client
        self.key = key

    @classmethod
    def from_url(cls, url: str, encryption: Optional[TokenEncryption] = None) -> "RedisSettingsStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), encryption=encryption)

    def _read(self) -> Optional[str]:
        try:
            return self.redis_client.get(self.key)
        except redis.RedisError as e:
            logger.error(f"Error reading settings from Redis: {e}")
            return None

    def _write(self, payload: str) -> None:
        self.redis_client.set(self.key, payload)


def create_settings_store() -> SettingsStore:
    encryption = TokenEncryption(settings.secret_key) if settings.secret_key else None
    if settings.redis_url:
        logger.info("Using Redis settings store")
        return RedisSettingsStore.from_url(settings.redis_url, encryption=encryption)
    return FileSettingsStore(settings.settings_path, encryption=encryption)
