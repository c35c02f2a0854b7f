"""
Inbound content webhooks from the WordPress connector plugin.
"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from infrastructure.database.connection import get_db
from infrastructure.database.models import ContentWebhookLog, WebhookStatus, Workspace
from services.wp_connector import WPConnectorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/content", status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(get_rate_limit("webhook"))
async def content_webhook(
    request: Request,
    workspace: str = Query(...),
    x_wp_signature: Annotated[str | None, Header(alias="X-WP-Signature")] = None,
    x_wp_event: Annotated[str | None, Header(alias="X-WP-Event")] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Accept a signed content event and queue it for processing.

    The signature is an HMAC-SHA256 hex digest of the raw body.
    """
    body = await request.body()

    found = (await db.execute(select(Workspace).where(Workspace.slug == workspace))).scalar_one_or_none()
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found")

    connector = WPConnectorService(db)
    if not connector.has_active_connector(found):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Connector not enabled")

    if not connector.validate_signature(found, body, x_wp_signature):
        logger.warning("Invalid content webhook signature for workspace %s", found.slug)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(body) if body else {}
    except (json.JSONDecodeError, ValueError) as e:
        logger.error("Invalid JSON in content webhook payload: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    event_type = x_wp_event or (payload.get("event") if isinstance(payload, dict) else None) or "unknown"
    log = ContentWebhookLog(
        workspace_id=found.id,
        event_type=event_type[:100],
        payload=payload if isinstance(payload, dict) else {"data": payload},
        status=WebhookStatus.PENDING.value,
    )
    db.add(log)
    await connector.touch_sync(found)

    logger.info("Content webhook %s queued for workspace %s", event_type, found.slug)
    return {"received": True, "id": log.id}
