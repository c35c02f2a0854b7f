"""
Security utilities for authentication, hashing and encryption at rest.
"""

from .encryption import CredentialEncryption, get_credential_encryption
from .password import PasswordHasher, password_hasher
from .tokens import TokenPayload, TokenService

__all__ = [
    "CredentialEncryption",
    "get_credential_encryption",
    "PasswordHasher",
    "password_hasher",
    "TokenService",
    "TokenPayload",
]
