"""
Server console panel.

Lists the hub's own services as servers. Command execution is not offered;
the terminal is display only.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_hades_user
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services.deployments import DeploymentService

router = APIRouter(prefix="/hub/console", tags=["Hub - Console"])

SERVER_TYPES = {
    "Database": "PostgreSQL",
    "Redis": "Redis",
    "Queue Workers": "Python",
    "Storage": "Filesystem",
}


def server_list(checks: list[dict]) -> list[dict]:
    return [
        {
            "id": index,
            "name": check["name"],
            "type": SERVER_TYPES.get(check["name"], "Server"),
            "status": "online" if check["status"] == "healthy" else "offline",
        }
        for index, check in enumerate(checks, start=1)
    ]


@router.get("")
async def console(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    server: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    servers = server_list(await DeploymentService(db).services())
    selected = next((s for s in servers if s["id"] == server), None)
    return {
        "servers": servers,
        "selected_server": selected["id"] if selected else None,
        "selected_server_data": selected,
        "prompt": f"root@{selected['name'].lower().replace(' ', '-')}:~$" if selected else None,
        "command_execution": False,
    }
