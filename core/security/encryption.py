"""
Encryption at rest for stored secrets (AI provider keys, connector secrets).

Uses Fernet symmetric encryption keyed from the configured
``CREDENTIAL_ENCRYPTION_KEY`` (``SECRET_KEY`` when unset).
"""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from infrastructure.config.settings import settings


class CredentialEncryption:
    """Handle encryption and decryption of sensitive credentials."""

    def __init__(self, secret_key: str):
        # Fernet needs a 32-byte urlsafe-base64 key; derive one from any secret
        key_bytes = hashlib.sha256(secret_key.encode()).digest()
        self.fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def encrypt(self, value: str) -> str:
        """Encrypt a string value; empty values stay empty."""
        if not value:
            return ""
        return self.fernet.encrypt(value.encode()).decode()

    def decrypt(self, encrypted_value: str) -> str:
        """
        Decrypt an encrypted string value.

        Raises:
            ValueError: If the token is malformed or was encrypted with another key
        """
        if not encrypted_value:
            return ""
        try:
            return self.fernet.decrypt(encrypted_value.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Failed to decrypt credential") from e


@lru_cache(maxsize=4)
def _encryption_for(secret_key: str) -> CredentialEncryption:
    return CredentialEncryption(secret_key)


def get_credential_encryption() -> CredentialEncryption:
    """Shared encryption instance for the configured key."""
    return _encryption_for(settings.credential_encryption_key or settings.secret_key)
