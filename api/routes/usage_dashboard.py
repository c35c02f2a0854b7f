"""
Usage dashboard for the current workspace.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_workspace
from api.presenters import boost_row, package_row, usage_groups
from core.presentation import empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import Workspace
from services.entitlements import EntitlementService

router = APIRouter(prefix="/hub/usage", tags=["Hub - Usage"])


@router.get("")
async def usage_dashboard(
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Active packages, grouped usage and active boosts."""
    if workspace is None:
        return {
            "workspace": None,
            "packages": [],
            "usage": [],
            "boosts": [],
            "empty_states": {
                "packages": empty_state("packages"),
                "usage": empty_state("usage"),
                "boosts": empty_state("boosts"),
            },
        }

    entitlements = EntitlementService(db)
    packages = [package_row(wp) for wp in await entitlements.get_active_packages(workspace)]
    usage = usage_groups(await entitlements.get_usage_summary(workspace))
    boosts = []
    for boost in await entitlements.get_active_boosts(workspace):
        feature = await entitlements.get_feature(boost.feature_code)
        boosts.append(boost_row(boost, feature.name if feature else None))

    empty_states = {
        key: empty_state(key)
        for key, items in (("packages", packages), ("usage", usage), ("boosts", boosts))
        if not items
    }
    return {
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
        "packages": packages,
        "usage": usage,
        "boosts": boosts,
        "empty_states": empty_states,
    }
