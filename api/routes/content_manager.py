"""
Content manager: dashboard, kanban, calendar, list and webhook views.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_workspace_by_slug
from api.presenters import iso
from api.schemas.hub import ActionResponse
from api.utils import action, paginate
from core.plans import HUB_SECTIONS
from core.presentation import select_section, toggle_sort, with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    ContentKind,
    ContentStatus,
    ContentType,
    ContentWebhookLog,
    SyncStatus,
    User,
    Workspace,
)
from services.cdn import CDNService
from services.content import LIST_SORT_COLUMNS, ContentService, item_row

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/content-manager", tags=["Hub - Content Manager"])

VIEWS = HUB_SECTIONS["content_manager"]
PER_PAGE = 20


def webhook_row(log: ContentWebhookLog) -> dict:
    return {
        "id": log.id,
        "event_type": log.event_type,
        "status": log.status,
        "error_message": log.error_message,
        "processed_at": iso(log.processed_at),
        "created_at": iso(log.created_at),
        "can_retry": log.status == "failed",
    }


@router.get("/{workspace}")
async def content_manager(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    view: Optional[str] = Query(None),
    search: str = Query(""),
    type: str = Query(""),
    status_filter: str = Query("", alias="status"),
    sync_status: str = Query(""),
    category: str = Query(""),
    content_type: str = Query(""),
    sort: str = Query("created_at"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    toggle: Optional[str] = Query(None, description="Column header clicked; flips or resets the sort"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    State for one content manager view.

    Only the selected view's data is loaded. An unknown view falls back to
    the dashboard.
    """
    view = select_section(view, VIEWS, VIEWS[0])
    service = ContentService(db, workspace)
    state: dict = {
        "view": view,
        "views": VIEWS,
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
    }

    if view == "dashboard":
        state["stats"] = await service.stats()
        state["chart_data"] = await service.chart_data()
        state["content_by_type"] = await service.content_by_type()
    elif view == "kanban":
        state["columns"] = await service.kanban()
    elif view == "calendar":
        events = await service.calendar()
        state["events"] = events
        with_empty_state(state, "content", events)
    elif view == "list":
        if sort not in LIST_SORT_COLUMNS:
            sort = "created_at"
        if toggle in LIST_SORT_COLUMNS:
            sort, direction = toggle_sort(sort, direction, toggle)
        listing = await service.list_items(
            search=search,
            type=type,
            status=status_filter,
            sync_status=sync_status,
            category=category,
            content_type=content_type,
            sort=sort,
            direction=direction,
            page=page,
            per_page=PER_PAGE,
        )
        items = [item_row(item) for item in listing["items"]]
        state.update(
            {
                "items": items,
                "pagination": paginate(listing["total"], page, PER_PAGE),
                "filters": {
                    "search": search,
                    "type": type,
                    "status": status_filter,
                    "sync_status": sync_status,
                    "category": category,
                    "content_type": content_type,
                },
                "sort": sort,
                "direction": direction,
                "categories": await service.category_options(),
                "options": {
                    "types": [k.value for k in ContentKind],
                    "statuses": [s.value for s in ContentStatus],
                    "sync_statuses": [s.value for s in SyncStatus],
                    "content_types": [t.value for t in ContentType],
                },
            }
        )
        with_empty_state(state, "content", items)
    else:
        logs = await service.webhook_logs(page=page, per_page=PER_PAGE)
        rows = [webhook_row(log) for log in logs["items"]]
        state["webhooks"] = rows
        state["pagination"] = paginate(logs["total"], page, PER_PAGE)
        with_empty_state(state, "webhooks", rows)

    return state


@router.get("/{workspace}/items/{item_id}")
async def preview_item(
    item_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    item = await ContentService(db, workspace).get_item(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return {**item_row(item), "content_html": item.content_html, "seo_meta": item.seo_meta or {}}


@router.post("/{workspace}/sync-all", response_model=ActionResponse)
async def sync_all(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
) -> dict:
    return action("Native content system - external sync not required")


@router.post("/{workspace}/purge-cache", response_model=ActionResponse)
async def purge_cache(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    if await CDNService().purge_workspace(workspace):
        logger.info("User %s purged CDN cache for workspace %s", current_user.id, workspace.id)
        return action("CDN cache purged successfully")
    return action("Failed to purge CDN cache", level="error")


@router.post("/{workspace}/webhooks/{log_id}/retry", response_model=ActionResponse)
async def retry_webhook(
    log_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not await ContentService(db, workspace).retry_webhook(log_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Failed webhook not found")
    return action("Webhook marked for retry")
