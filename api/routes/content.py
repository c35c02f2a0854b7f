"""
Content library: posts, pages and media tables for a workspace.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_workspace_by_slug
from api.schemas.hub import ActionResponse
from api.utils import action, paginate
from core.plans import HUB_SECTIONS
from core.presentation import select_section, toggle_sort, with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import ContentKind, ContentStatus, User, Workspace
from services.content import TABLE_SORT_COLUMNS, ContentService, item_row, media_row

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/content", tags=["Hub - Content"])

TABS = HUB_SECTIONS["content"]
PER_PAGE = 15

TAB_KINDS = {"posts": ContentKind.POST.value, "pages": ContentKind.PAGE.value}


@router.get("/{workspace}")
async def content_library(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    tab: Optional[str] = Query(None),
    search: str = Query(""),
    status_filter: str = Query("", alias="status"),
    sort: str = Query("date"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    toggle: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    tab = select_section(tab, TABS, TABS[0])
    service = ContentService(db, workspace)
    kind = TAB_KINDS.get(tab)

    if sort not in TABLE_SORT_COLUMNS:
        sort = "date"
    if toggle in TABLE_SORT_COLUMNS:
        sort, direction = toggle_sort(sort, direction, toggle)

    state: dict = {
        "tab": tab,
        "tabs": TABS,
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
        "stats": await service.tab_stats(kind),
        "filters": {"search": search, "status": status_filter},
        "statuses": [s.value for s in ContentStatus],
        "sort": sort,
        "direction": direction,
    }

    if kind is None:
        listing = await service.media(page=page, per_page=PER_PAGE)
        rows = [media_row(media) for media in listing["items"]]
    else:
        listing = await service.list_items(
            search=search,
            type=kind,
            status=status_filter,
            sort=TABLE_SORT_COLUMNS[sort],
            direction=direction,
            page=page,
            per_page=PER_PAGE,
        )
        rows = [item_row(item) for item in listing["items"]]

    state["items"] = rows
    state["pagination"] = paginate(listing["total"], page, PER_PAGE)
    return with_empty_state(state, "content", rows)


@router.delete("/{workspace}/items/{item_id}", response_model=ActionResponse)
async def delete_item(
    item_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    item = await service.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    title = item.title
    await service.delete_item(item)
    logger.info("User %s deleted content %s", current_user.id, item_id)
    return action(f"'{title}' deleted.")
