"""
Workspace switcher.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_current_workspace
from api.schemas.hub import ActionResponse, WorkspaceSwitchRequest
from api.utils import action
from core.presentation import with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import User, Workspace
from services.workspaces import WorkspaceService

router = APIRouter(prefix="/hub/workspaces", tags=["Hub - Workspaces"])


def _summary(workspace: Optional[Workspace]) -> Optional[dict]:
    if workspace is None:
        return None
    return {
        "id": workspace.id,
        "name": workspace.name,
        "slug": workspace.slug,
        "icon": workspace.icon,
        "color": workspace.color,
    }


@router.get("")
async def list_workspaces(
    current_user: Annotated[User, Depends(get_current_user)],
    current: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    workspaces = await WorkspaceService(db).list_for_user(current_user)
    for entry in workspaces:
        entry["is_current"] = current is not None and entry["id"] == current.id
    state = {"current": _summary(current), "workspaces": workspaces}
    return with_empty_state(state, "workspaces", workspaces)


@router.post("/switch", response_model=ActionResponse)
async def switch_workspace(
    body: WorkspaceSwitchRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    workspace = await WorkspaceService(db).switch(current_user, body.slug)
    return action(f"Switched to {workspace.name}.", current=_summary(workspace))
