"""
Password hashing utilities using bcrypt.
"""

import secrets
import string

from passlib.context import CryptContext

_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*-_"


class PasswordHasher:
    """Password hashing and verification using bcrypt."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against a hash.

        Malformed hashes (e.g. an anonymised account's placeholder) never match.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError:
            return False

    @staticmethod
    def generate_random_password(length: int = 32) -> str:
        """Random password for accounts nobody should be able to log into."""
        return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


# Singleton instance
password_hasher = PasswordHasher()
