"""
Authentication API routes.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, token_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from core.security.password import password_hasher
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, UserStatus, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Verified against when the email is unknown so timing does not reveal accounts
_DUMMY_HASH = "$2b$12$WmDNGEj9s7YLV5sV/N7aBOpWL0.T5.R5ZQOeKHNlLB.d7WN4HFXIC"


def _get_cookie_kwargs(settings_obj) -> dict:
    """Return cookie kwargs based on environment.

    SameSite=None; Secure=True whenever the frontend is not on localhost,
    SameSite=Lax for local development.
    """
    is_production = getattr(settings_obj, "environment", "development") == "production"
    frontend_url = getattr(settings_obj, "frontend_url", "http://localhost:3000")
    is_deployed = not any(h in frontend_url for h in ("localhost", "127.0.0.1", "0.0.0.0"))
    use_cross_site = is_production or is_deployed
    return dict(
        httponly=True,
        secure=use_cross_site,
        samesite="none" if use_cross_site else "lax",
        path="/",
    )


def _set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str, settings_obj) -> None:
    """Set HttpOnly auth cookies on response."""
    kwargs = _get_cookie_kwargs(settings_obj)
    access_max_age = settings_obj.jwt_access_token_expire_minutes * 60
    refresh_max_age = settings_obj.jwt_refresh_token_expire_days * 86400
    response.set_cookie("access_token", access_token, max_age=access_max_age, **kwargs)
    response.set_cookie("refresh_token", refresh_token, max_age=refresh_max_age, **kwargs)


def _clear_auth_cookies(response: JSONResponse, settings_obj) -> None:
    """Clear auth cookies on logout."""
    kwargs = _get_cookie_kwargs(settings_obj)
    response.delete_cookie("access_token", **kwargs)
    response.delete_cookie("refresh_token", **kwargs)


def _token_response(user: User) -> JSONResponse:
    access_token, refresh_token = token_service.create_token_pair(
        user_id=user.id,
        email=user.email,
        tier=user.tier,
    )
    response = JSONResponse(
        content={
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.jwt_access_token_expire_minutes * 60,
        }
    )
    _set_auth_cookies(response, access_token, refresh_token, settings)
    return response


@router.post("/login", response_model=TokenResponse)
@limiter.limit(get_rate_limit("login"))
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate user and return access tokens.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    password_ok = password_hasher.verify(
        login_data.password,
        user.password_hash if user else _DUMMY_HASH,
    )
    if not user or not password_ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.status == UserStatus.SUSPENDED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been suspended",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    user.last_login = utcnow()
    await db.commit()

    logger.info("User %s logged in", user.id)
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(get_rate_limit("refresh"))
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Refresh access token using refresh token.

    Accepts the refresh token from the HttpOnly cookie first, then the body.
    """
    refresh_tok = request.cookies.get("refresh_token")
    if not refresh_tok:
        refresh_tok = body.refresh_token if body and body.refresh_token else None

    if not refresh_tok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    payload = token_service.verify_refresh_token(refresh_tok)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get current authenticated user profile.
    """
    return current_user


@router.post("/verify-email", status_code=status.HTTP_200_OK)
@limiter.limit(get_rate_limit("resend_verification"))
async def verify_email(
    request: Request,
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Verify email address using verification token.
    """
    result = token_service.verify_email_verification_token(body.token)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token",
        )

    user_id, email = result

    db_result = await db.execute(select(User).where(User.id == user_id, User.email == email))
    user = db_result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid verification token",
        )

    if user.email_verified_at is not None:
        return {"message": "Email is already verified"}

    user.email_verified_at = utcnow()
    await db.commit()

    return {"message": "Email has been verified successfully"}


@router.post("/logout", status_code=status.HTTP_200_OK)
@limiter.limit("20/minute")
async def logout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
) -> JSONResponse:
    """
    Logout current user.

    JWTs are stateless; clearing the HttpOnly cookies signs browser clients
    out and API clients discard their token.
    """
    response = JSONResponse(content={"message": "Logged out successfully"})
    _clear_auth_cookies(response, settings)
    return response
