"""
Site settings for one of the user's workspaces.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.schemas.hub import ActionResponse, AddServiceRequest
from api.utils import action
from core.plans import HUB_SECTIONS, SERVICES
from core.presentation import select_section
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, Workspace
from services.entitlements import EntitlementService
from services.workspaces import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/sites", tags=["Hub - Site Settings"])

TABS = HUB_SECTIONS["site_settings"]

TAB_LABELS = {
    "services": "Services",
    "general": "General",
    "deployment": "Deployment",
    "environment": "Environment",
    "ssl": "SSL & Security",
    "backups": "Backups",
    "danger": "Danger Zone",
}

COMING_SOON = {
    "deployment": "Deployment settings will allow you to configure Git repository, branches, build commands, and deploy hooks.",
    "environment": "Environment settings will allow you to configure environment variables, secrets, and runtime versions.",
    "ssl": "SSL & Security settings will allow you to manage SSL certificates, force HTTPS, and HTTP/2 configuration.",
    "backups": "Backup settings will allow you to configure backup frequency, retention periods, and restore points.",
}


async def get_own_workspace(
    workspace: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Workspace:
    """Only workspaces the user belongs to; no Hades override here."""
    service = WorkspaceService(db)
    found = await service.get_by_slug(workspace)
    if found is None or await service.get_membership(current_user, found) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No workspace found.")
    return found


async def service_cards(db: AsyncSession, workspace: Workspace) -> list[dict]:
    entitlements = EntitlementService(db)
    cards = []
    for slug, service in SERVICES.items():
        cards.append(
            {
                "slug": slug,
                "name": service["name"],
                "description": service["description"],
                "icon": service["icon"],
                "color": service["color"],
                "feature": service["feature_code"],
                "features": service["features"],
                "admin_route": f"/hub/services?service={slug}",
                "entitled": (await entitlements.can(workspace, service["feature_code"])).allowed,
            }
        )
    return cards


@router.get("/{workspace}/settings")
async def site_settings(
    workspace: Annotated[Workspace, Depends(get_own_workspace)],
    tab: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    tab = select_section(tab, TABS, TABS[0])
    state: dict = {
        "tab": tab,
        "tabs": [{"key": key, "label": TAB_LABELS[key]} for key in TABS],
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
    }

    if tab == "services":
        state["services"] = await service_cards(db, workspace)
    elif tab == "general":
        state["general"] = {
            "name": workspace.name,
            "domain": workspace.domain or "Not configured",
            "description": workspace.description or "No description",
            "is_active": workspace.is_active,
        }
    elif tab == "danger":
        state["danger"] = {
            "transfer_enabled": False,
            "delete_enabled": False,
        }
    else:
        state["coming_soon"] = COMING_SOON[tab]
    return state


@router.post("/{workspace}/settings/services", response_model=ActionResponse)
async def add_service(
    body: AddServiceRequest,
    workspace: Annotated[Workspace, Depends(get_own_workspace)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    feature = await WorkspaceService(db).add_service(workspace, body.feature_code, current_user)
    return action(f"{feature.name} has been added to your site.")
