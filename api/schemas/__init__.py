"""
API request and response schemas.
"""

from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from .hub import ActionResponse

__all__ = [
    "ActionResponse",
    "LoginRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "UserResponse",
    "VerifyEmailRequest",
]
