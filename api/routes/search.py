"""
Global search palette: grouped results and recent selections.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_current_workspace
from api.schemas.hub import ActionResponse, RecentSearchRequest
from api.utils import action
from core.presentation import empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, Workspace
from services.search_registry import RecentSearches, SearchProviderRegistry, build_registry

router = APIRouter(prefix="/hub/search", tags=["Hub - Search"])

MIN_QUERY_LENGTH = 2
RESULTS_PER_TYPE = 5


@router.get("")
async def search(
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    q: str = Query("", max_length=255),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Query every available provider.

    Below two characters the palette shows recent searches instead.
    """
    query = q.strip()
    recent = await RecentSearches().entries(current_user)
    if len(query) < MIN_QUERY_LENGTH:
        return {"query": query, "results": {}, "flat": [], "recent": recent}

    grouped = await build_registry(db).search(
        query, current_user, workspace, limit_per_provider=RESULTS_PER_TYPE
    )
    state = {
        "query": query,
        "results": grouped,
        "flat": SearchProviderRegistry.flatten_results(grouped),
        "recent": recent,
    }
    if not grouped:
        state["empty_state"] = f'{empty_state("search")} for "{query}"'
    return state


@router.get("/recent")
async def recent_searches(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return {"recent": await RecentSearches().entries(current_user)}


@router.post("/navigate", response_model=ActionResponse)
async def navigate(
    body: RecentSearchRequest,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    """Record a selected result and hand its URL back for navigation."""
    recent = await RecentSearches().add(current_user, body.model_dump())
    return action("Navigating.", url=body.url, recent=recent)


@router.post("/recent/{index}/navigate", response_model=ActionResponse)
async def navigate_recent(
    index: int,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    searches = RecentSearches()
    recent = await searches.entries(current_user)
    if not 0 <= index < len(recent):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recent search not found")
    entry = recent[index]
    recent = await searches.add(current_user, entry)
    return action("Navigating.", url=entry["url"], recent=recent)


@router.delete("/recent/{index}", response_model=ActionResponse)
async def remove_recent(
    index: int,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    recent = await RecentSearches().remove(current_user, index)
    return action("Recent search removed.", recent=recent)


@router.delete("/recent", response_model=ActionResponse)
async def clear_recent(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    await RecentSearches().clear(current_user)
    return action("Recent searches cleared.", recent=[])
