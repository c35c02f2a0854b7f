"""
Platform administration: user list, platform stats and DevOps actions.
"""

import logging
import platform as runtime
from datetime import timedelta
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_hades_user
from api.presenters import user_row
from api.schemas.hub import ActionResponse
from api.utils import action, create_audit_log, escape_like, paginate
from core.presentation import empty_state
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import AuditAction, AuditTargetType, User, UserTier, utcnow
from services.cache import cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/platform", tags=["Admin - Platform"])

PER_PAGE = 20


async def platform_stats(db: AsyncSession) -> dict:
    now = utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today - timedelta(days=today.weekday())

    async def count(*where) -> int:
        query = select(func.count(User.id))
        if where:
            query = query.where(*where)
        return (await db.execute(query)).scalar() or 0

    return {
        "total_users": await count(),
        "verified_users": await count(User.email_verified_at.is_not(None)),
        "hades_users": await count(User.tier == UserTier.HADES.value),
        "apollo_users": await count(User.tier == UserTier.APOLLO.value),
        "free_users": await count(User.tier == UserTier.FREE.value),
        "users_today": await count(User.created_at >= today),
        "users_this_week": await count(User.created_at >= week_start),
    }


def system_info() -> dict:
    return {
        "python_version": runtime.python_version(),
        "app_version": settings.app_version,
        "environment": settings.environment,
        "debug_mode": "On" if settings.debug else "Off",
        "cache_driver": "redis" if cache.is_connected else "memory",
    }


@router.get("")
async def platform_dashboard(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    search: Optional[str] = Query(None),
    tier: Optional[str] = Query(None, pattern="^(free|apollo|hades)?$"),
    verified: Optional[str] = Query(None, pattern="^(0|1)?$"),
    sort: str = Query("created_at", pattern="^(created_at|name|email)$"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Platform stats plus the filtered, sorted user list.

    Admin access required.
    """
    filters = []
    if search:
        pattern = f"%{escape_like(search)}%"
        filters.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if tier:
        filters.append(User.tier == tier)
    if verified == "1":
        filters.append(User.email_verified_at.is_not(None))
    elif verified == "0":
        filters.append(User.email_verified_at.is_(None))

    count_query = select(func.count(User.id))
    query = select(User)
    if filters:
        count_query = count_query.where(and_(*filters))
        query = query.where(and_(*filters))
    total = (await db.execute(count_query)).scalar() or 0

    order = desc if direction == "desc" else asc
    query = query.order_by(order(getattr(User, sort))).limit(PER_PAGE).offset((page - 1) * PER_PAGE)
    users = [user_row(user) for user in (await db.execute(query)).scalars().all()]

    state = {
        "stats": await platform_stats(db),
        "system_info": system_info(),
        "tiers": [t.value for t in UserTier],
        "filters": {"search": search or "", "tier": tier or "", "verified": verified or ""},
        "sort": sort,
        "direction": direction,
        "users": users,
        "pagination": paginate(total, page, PER_PAGE),
    }
    if not users:
        state["empty_state"] = empty_state("search")
    return state


@router.post("/users/{user_id}/verify-email", response_model=ActionResponse)
async def verify_email(
    user_id: str,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if user.email_verified_at is None:
        user.email_verified_at = utcnow()
        await db.commit()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.EMAIL_VERIFIED,
        AuditTargetType.USER,
        user.id,
        f"Email verified for {user.email}",
        request=request,
        target_user_id=user.id,
    )
    logger.info("Admin %s verified email for user %s", admin_user.id, user.id)
    return action(f"Email verified for {user.email}.")


@router.post("/clear-cache", response_model=ActionResponse)
async def clear_cache(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    removed = await cache.flush()
    await create_audit_log(
        db,
        admin_user,
        AuditAction.CACHE_CLEARED,
        AuditTargetType.SYSTEM,
        None,
        "Application cache cleared",
        metadata={"keys_removed": removed},
        request=request,
    )
    logger.info("Admin %s cleared the application cache (%d keys)", admin_user.id, removed)
    return action("Application cache cleared.")


@router.post("/restart-queue", response_model=ActionResponse)
async def restart_queue(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Signal the background loops to restart on their next tick."""
    await cache.set("queue:restart", utcnow().isoformat())
    await create_audit_log(
        db,
        admin_user,
        AuditAction.QUEUE_RESTARTED,
        AuditTargetType.SYSTEM,
        None,
        "Queue restart signalled",
        request=request,
    )
    logger.info("Admin %s signalled a queue restart", admin_user.id)
    return action("Queue workers signalled to restart.")
