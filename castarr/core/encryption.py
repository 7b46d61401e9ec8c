import hashlib
import logging
from base64 import urlsafe_b64encode

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class TokenEncryption:
    """Encrypts the Plex token before it is written to the settings store"""

    def __init__(self, secret_key: str):
        # Fernet needs a 32-byte urlsafe key; derive one from the secret
        key = hashlib.sha256(secret_key.encode()).digest()
        self.fernet = Fernet(urlsafe_b64encode(key))

    def encrypt(self, token: str) -> str:
        if not token:
            return ""
        return self.fernet.encrypt(token.encode()).decode()

    def decrypt(self, value: str) -> str:
        """Decrypt a stored token; an undecryptable value reads as no token"""
        if not value:
            return ""
        try:
            return self.fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            logger.warning("Stored token could not be decrypted with the configured secret key")
            return ""
