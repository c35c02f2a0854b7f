"""
Account settings: profile, preferences, password, two-factor and deletion.
"""

import logging
from typing import Annotated, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.dependencies import get_current_user
from api.presenters import iso
from api.schemas.hub import (
    ActionResponse,
    DeletionRequest,
    PasswordUpdateRequest,
    PreferencesRequest,
    ProfileUpdateRequest,
)
from api.utils import action, raise_validation
from core.plans import HUB_SECTIONS
from core.presentation import deletion_status, select_section
from core.security.password import password_hasher
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, UserSetting
from services.user_data import DELETION_GRACE_DAYS, UserDataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/settings", tags=["Hub - Settings"])

SECTIONS = HUB_SECTIONS["settings"]

PREFERENCE_DEFAULTS = {
    "locale": "en_GB",
    "timezone": "Europe/London",
    "time_format": 12,
    "week_starts_on": 1,
}

LOCALES = {
    "en_GB": "English (UK)",
    "en_US": "English (US)",
    "de_DE": "Deutsch",
    "es_ES": "Español",
    "fr_FR": "Français",
    "it_IT": "Italiano",
    "nl_NL": "Nederlands",
    "pt_PT": "Português",
}

MIN_PASSWORD_LENGTH = 8


async def load_preferences(db: AsyncSession, user: User) -> dict:
    result = await db.execute(
        select(UserSetting).where(
            UserSetting.user_id == user.id,
            UserSetting.name.in_(PREFERENCE_DEFAULTS),
        )
    )
    stored = {setting.name: setting.payload for setting in result.scalars().all()}
    return {
        name: default if stored.get(name) is None else stored[name]
        for name, default in PREFERENCE_DEFAULTS.items()
    }


def validate_preferences(body: PreferencesRequest) -> dict[str, str]:
    errors = {}
    if not body.locale.strip():
        errors["locale"] = "The locale field is required."
    try:
        ZoneInfo(body.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors["timezone"] = "The timezone must be a valid zone."
    if body.time_format not in (12, 24):
        errors["time_format"] = "The selected time format is invalid."
    if body.week_starts_on not in (0, 1):
        errors["week_starts_on"] = "The selected week start is invalid."
    return errors


@router.get("")
async def settings_panel(
    current_user: Annotated[User, Depends(get_current_user)],
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    section = select_section(section, SECTIONS, SECTIONS[0])
    pending = await UserDataService(db).pending_deletion(current_user)

    state = {
        "section": section,
        "sections": SECTIONS,
        "profile": {"name": current_user.name, "email": current_user.email},
        "preferences": await load_preferences(db, current_user),
        "two_factor": {"available": False, "enabled": False},
        "pending_deletion": (
            {
                "id": pending.id,
                "expires_at": iso(pending.expires_at),
                "status": deletion_status(pending.expires_at, pending.completed_at, pending.cancelled_at),
            }
            if pending
            else None
        ),
    }
    if section == "preferences":
        state["locales"] = LOCALES
        state["timezones"] = sorted(available_timezones())
    return state


@router.put("/profile", response_model=ActionResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    errors = {}
    name = body.name.strip()
    if not name:
        errors["name"] = "The name field is required."
    elif len(name) > 255:
        errors["name"] = "The name may not be greater than 255 characters."

    email = body.email.strip().lower()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        errors["email"] = "The email must be a valid email address."
    else:
        taken = await db.execute(
            select(User.id).where(func.lower(User.email) == email, User.id != current_user.id)
        )
        if taken.first() is not None:
            errors["email"] = "The email has already been taken."
    raise_validation(errors)

    current_user.name = name
    current_user.email = email
    await db.commit()
    logger.info("User %s updated their profile", current_user.id)
    return action("Profile updated successfully.")


@router.put("/preferences", response_model=ActionResponse)
async def update_preferences(
    body: PreferencesRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    raise_validation(validate_preferences(body))

    values = {
        "locale": body.locale,
        "timezone": body.timezone,
        "time_format": body.time_format,
        "week_starts_on": body.week_starts_on,
    }
    result = await db.execute(
        select(UserSetting).where(
            UserSetting.user_id == current_user.id,
            UserSetting.name.in_(values),
        )
    )
    existing = {setting.name: setting for setting in result.scalars().all()}
    for name, payload in values.items():
        if name in existing:
            existing[name].payload = payload
        else:
            db.add(UserSetting(user_id=current_user.id, name=name, payload=payload))
    await db.commit()
    return action("Preferences updated.", preferences=values)


@router.put("/password", response_model=ActionResponse)
async def update_password(
    body: PasswordUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    errors = {}
    if not body.current_password or not password_hasher.verify(
        body.current_password, current_user.password_hash
    ):
        errors["current_password"] = "The password is incorrect."
    if len(body.password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
    elif body.password != body.password_confirmation:
        errors["password"] = "The password confirmation does not match."
    raise_validation(errors)

    current_user.password_hash = password_hasher.hash(body.password)
    await db.commit()
    logger.info("User %s changed their password", current_user.id)
    return action("Password updated successfully.")


@router.post("/two-factor", response_model=ActionResponse)
async def two_factor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return action(
        "Two-factor authentication is being upgraded. Please check back soon.", level="warning"
    )


@router.post("/delete-account", response_model=ActionResponse)
async def request_account_deletion(
    body: DeletionRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    user_data = UserDataService(db)
    if await user_data.pending_deletion(current_user) is not None:
        return action("An account deletion request is already pending.", level="warning")

    deletion = await user_data.schedule_deletion(current_user, reason=body.reason or None)
    await email_service.send_account_deletion_email(
        current_user.email, current_user.name, days=DELETION_GRACE_DAYS
    )
    return action(
        "Account deletion requested. You have 7 days to cancel.",
        level="warning",
        expires_at=iso(deletion.expires_at),
    )


@router.post("/delete-account/cancel", response_model=ActionResponse)
async def cancel_account_deletion(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    await UserDataService(db).cancel_pending_deletion(current_user)
    return action("Account deletion cancelled.")
