"""
Authentication request and response schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema; the cookie is used when omitted."""

    refresh_token: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    token: str


class UserResponse(BaseModel):
    """User response schema."""

    id: str
    email: str
    name: str
    status: str
    tier: str
    email_verified: bool
    current_workspace_id: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
