"""
Databases panel: WordPress connector settings and internal content health.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_workspace
from api.presenters import iso
from api.schemas.hub import ActionResponse, ConnectorSettingsRequest
from api.utils import action, raise_validation
from core.presentation import health_color, mask_secret
from infrastructure.database.connection import get_db
from infrastructure.database.models import Workspace
from services.wp_connector import WPConnectorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/databases", tags=["Hub - Databases"])


def require_workspace(
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
) -> Workspace:
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No workspace found.")
    return workspace


def connector_state(connector: WPConnectorService, workspace: Workspace, reveal: bool = False) -> dict:
    secret = connector.get_secret(workspace)
    return {
        "enabled": workspace.wp_connector_enabled,
        "url": workspace.wp_connector_url,
        "webhook_url": connector.webhook_url(workspace),
        "secret": secret if reveal else mask_secret(secret),
        "secret_revealed": reveal and secret is not None,
        "verified": workspace.wp_connector_verified_at is not None,
        "verified_at": iso(workspace.wp_connector_verified_at),
        "last_sync": iso(workspace.wp_connector_last_sync),
        "active": connector.has_active_connector(workspace),
    }


@router.get("")
async def databases(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    reveal: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> dict:
    connector = WPConnectorService(db)
    health = await connector.internal_health(workspace)
    return {
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
        "connector": connector_state(connector, workspace, reveal),
        "internal_health": {**health, "color": health_color(health["status"])},
    }


@router.put("/wp-connector", response_model=ActionResponse)
async def save_connector(
    body: ConnectorSettingsRequest,
    workspace: Annotated[Workspace, Depends(require_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    connector = WPConnectorService(db)
    if not body.enabled:
        await connector.disable(workspace)
        return action("WordPress connector disabled.", connector=connector_state(connector, workspace))

    url = (body.url or "").strip()
    if not url:
        raise_validation({"url": "Please enter your WordPress site URL."})
    if not url.startswith(("http://", "https://")):
        raise_validation({"url": "Please enter a valid URL."})

    await connector.enable(workspace, url)
    return action("WordPress connector settings saved.", connector=connector_state(connector, workspace))


@router.post("/wp-connector/regenerate-secret", response_model=ActionResponse)
async def regenerate_secret(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    connector = WPConnectorService(db)
    await connector.regenerate_secret(workspace)
    return action(
        "Webhook secret regenerated. Update your WordPress plugin settings.",
        level="warning",
        connector=connector_state(connector, workspace, reveal=True),
    )


@router.post("/wp-connector/test", response_model=ActionResponse)
async def test_connection(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    connector = WPConnectorService(db)
    result = await connector.test_connection(workspace)
    if not result["success"]:
        return action(result["message"], level="error")
    return action(result["message"], connector=connector_state(connector, workspace))


@router.post("/internal-health", response_model=ActionResponse)
async def refresh_internal_health(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    health = await WPConnectorService(db).internal_health(workspace)
    return action("Health check refreshed.", internal_health={**health, "color": health_color(health["status"])})
