"""
Services panel: per-service dashboards for the current workspace.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_current_workspace
from api.schemas.hub import ActionResponse, AnalyticsSettingsRequest
from api.utils import action
from core.presentation import select_section
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, Workspace
from services.web_analytics import DATE_RANGES, DEFAULT_RANGE, WebAnalyticsService
from services.workspaces import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/services", tags=["Hub - Services"])

DEFAULT_TAB = "dashboard"


async def available_services(
    db: AsyncSession, user: User, workspace: Optional[Workspace]
) -> list[dict]:
    if workspace is None:
        return []
    return await WorkspaceService(db).entitled_services(workspace, include_all=user.is_hades)


async def analytics_state(analytics: WebAnalyticsService, tab: str, date_range: str) -> dict:
    """Only the active tab's data is loaded."""
    if tab == "dashboard":
        return {
            "stat_cards": await analytics.stat_cards(),
            "chart": await analytics.chart_data(date_range),
            "top_pages": await analytics.top_pages(date_range),
            "summary": await analytics.summary_metrics(date_range),
        }
    if tab == "websites":
        return {"websites": await analytics.websites(date_range)}
    if tab == "settings":
        return {"settings": await analytics.load_settings()}
    return {}


@router.get("")
async def services_panel(
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    service: Optional[str] = Query(None),
    tab: Optional[str] = Query(None),
    previous: Optional[str] = Query(None, description="Service shown before this request"),
    date_range: str = Query(DEFAULT_RANGE, alias="range"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    services = await available_services(db, current_user, workspace)
    by_slug = {s["slug"]: s for s in services}

    state: dict = {
        "services": [
            {"slug": s["slug"], "name": s["name"], "icon": s["icon"], "color": s["color"]}
            for s in services
        ],
        "workspace": (
            {"id": workspace.id, "name": workspace.name, "slug": workspace.slug} if workspace else None
        ),
    }
    if not services:
        state.update({"service": None, "tab": None, "tabs": []})
        return state

    current = service if service in by_slug else services[0]["slug"]
    tabs = by_slug[current]["tabs"]
    # Switching service starts again on its dashboard.
    if previous and previous != current:
        tab = DEFAULT_TAB
    tab = select_section(tab, tabs, DEFAULT_TAB)
    date_range = select_section(date_range, DATE_RANGES, DEFAULT_RANGE)

    state.update(
        {
            "service": current,
            "service_item": by_slug[current],
            "tab": tab,
            "tabs": tabs,
            "range": date_range,
            "ranges": list(DATE_RANGES),
        }
    )
    if current == "analytics":
        state["analytics"] = await analytics_state(
            WebAnalyticsService(db, workspace), tab, date_range
        )
    return state


async def _analytics_for(
    db: AsyncSession, user: User, workspace: Optional[Workspace]
) -> WebAnalyticsService:
    services = await available_services(db, user, workspace)
    if not any(s["slug"] == "analytics" for s in services):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found.")
    return WebAnalyticsService(db, workspace)


@router.put("/analytics/settings", response_model=ActionResponse)
async def save_analytics_settings(
    body: AnalyticsSettingsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    analytics = await _analytics_for(db, current_user, workspace)
    website = await analytics.save_settings(body.model_dump())
    if website is None:
        return action("No website to configure.", level="warning", success=False)
    return action("Settings saved successfully", settings=await analytics.load_settings())


@router.post("/analytics/pixel-key", response_model=ActionResponse)
async def regenerate_pixel_key(
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    analytics = await _analytics_for(db, current_user, workspace)
    pixel_key = await analytics.regenerate_pixel_key()
    if pixel_key is None:
        return action("No website to configure.", level="warning", success=False)
    return action(
        "Pixel key regenerated. Update your website tracking code.",
        pixel_key=pixel_key,
    )
