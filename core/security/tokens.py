"""
JWT token service for authentication.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

ACCESS = "access"
REFRESH = "refresh"
EMAIL_VERIFICATION = "email_verification"


@dataclass
class TokenPayload:
    """JWT token payload structure."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str  # access, refresh or email_verification
    email: str | None = None
    tier: str | None = None


class TokenService:
    """Creates and validates the hub's JWTs."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60,
        refresh_token_expire_days: int = 7,
        email_verification_expire_hours: int = 24,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes
        self._refresh_token_expire_days = refresh_token_expire_days
        self._email_verification_expire_hours = email_verification_expire_hours

    def _encode(self, user_id: str, token_type: str, lifetime: timedelta, **claims) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "exp": now + lifetime,
            "iat": now,
            "type": token_type,
        }
        payload.update({k: v for k, v in claims.items() if v is not None})
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        tier: str | None = None,
    ) -> str:
        return self._encode(
            user_id,
            ACCESS,
            timedelta(minutes=self._access_token_expire_minutes),
            email=email,
            tier=tier,
        )

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, REFRESH, timedelta(days=self._refresh_token_expire_days))

    def create_token_pair(
        self,
        user_id: str,
        email: str | None = None,
        tier: str | None = None,
    ) -> tuple[str, str]:
        """Create both access and refresh tokens as ``(access, refresh)``."""
        return (
            self.create_access_token(user_id, email, tier),
            self.create_refresh_token(user_id),
        )

    def create_email_verification_token(self, user_id: str, email: str) -> str:
        return self._encode(
            user_id,
            EMAIL_VERIFICATION,
            timedelta(hours=self._email_verification_expire_hours),
            email=email,
        )

    def decode_token(self, token: str) -> TokenPayload | None:
        """
        Decode and validate a JWT token.

        Returns:
            TokenPayload if valid, None if invalid, expired or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )
        except JWTError:
            return None

        if any(field not in payload for field in ("sub", "exp", "type")):
            return None

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
            type=payload["type"],
            email=payload.get("email"),
            tier=payload.get("tier"),
        )

    def _verify(self, token: str, token_type: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == token_type:
            return payload
        return None

    def verify_access_token(self, token: str) -> TokenPayload | None:
        return self._verify(token, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenPayload | None:
        return self._verify(token, REFRESH)

    def verify_email_verification_token(self, token: str) -> tuple[str, str] | None:
        """Return ``(user_id, email)`` for a valid verification token."""
        payload = self._verify(token, EMAIL_VERIFICATION)
        if payload is None or payload.email is None:
            return None
        return payload.sub, payload.email
