"""
Deployments panel: service health, git info and cache actions.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_hades_user
from api.schemas.hub import ActionResponse
from api.utils import action
from core.presentation import empty_state, health_color
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services.deployments import DeploymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/deployments", tags=["Hub - Deployments"])


@router.get("")
async def deployments(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = DeploymentService(db)
    services = [
        {**check, "color": health_color(check["status"])} for check in await service.services()
    ]
    commits = await service.recent_commits()
    state = {
        "services": services,
        "stats": await service.stats(),
        "git": await service.git_info(),
        "commits": commits,
    }
    if not commits:
        state["empty_state"] = empty_state("commits")
    return state


@router.post("/refresh", response_model=ActionResponse)
async def refresh(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    await DeploymentService(db).refresh()
    return action("Service status refreshed.")


@router.post("/clear-cache", response_model=ActionResponse)
async def clear_cache(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    removed = await DeploymentService(db).clear_cache()
    logger.info("Admin %s cleared %d cache keys from deployments", admin_user.id, removed)
    return action("Application cache cleared.")
