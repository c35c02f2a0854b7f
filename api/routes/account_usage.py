"""
Account usage panel: usage, workspaces, entitlements, boosts and AI keys.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_current_workspace
from api.presenters import boost_row, package_row, usage_groups
from core.plans import HUB_SECTIONS
from core.presentation import select_section, with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, Workspace
from services.ai_providers import AIProviderService
from services.entitlements import EntitlementService
from services.workspaces import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/account/usage", tags=["Hub - Account Usage"])

SECTIONS = HUB_SECTIONS["account_usage"]


async def _boost_rows(entitlements: EntitlementService, workspace: Workspace) -> list[dict]:
    rows = []
    for boost in await entitlements.get_active_boosts(workspace):
        feature = await entitlements.get_feature(boost.feature_code)
        rows.append(boost_row(boost, feature.name if feature else None))
    return rows


@router.get("")
async def account_usage(
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Panel state for one section; only that section's data is loaded.
    """
    section = select_section(section, SECTIONS, SECTIONS[0])
    entitlements = EntitlementService(db)
    state: dict = {
        "section": section,
        "sections": SECTIONS,
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug} if workspace else None,
    }

    if section == "overview":
        packages = [package_row(wp) for wp in await entitlements.get_active_packages(workspace)] if workspace else []
        usage = usage_groups(await entitlements.get_usage_summary(workspace)) if workspace else []
        state.update(packages=packages, usage=usage)
        with_empty_state(state, "packages", packages)

    elif section == "workspaces":
        overview = await WorkspaceService(db, entitlements).user_workspace_overview(current_user)
        state["workspaces"] = overview
        with_empty_state(state, "workspaces", overview)

    elif section == "entitlements":
        usage = usage_groups(await entitlements.get_usage_summary(workspace)) if workspace else []
        state["entitlements"] = usage
        with_empty_state(state, "entitlements", usage)

    elif section == "boosts":
        boosts = await _boost_rows(entitlements, workspace) if workspace else []
        state["boosts"] = boosts
        with_empty_state(state, "boosts", boosts)

    elif section == "ai":
        state["providers"] = await AIProviderService(db, current_user).get_settings()

    return state
