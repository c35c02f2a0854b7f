"""
Honeypot monitor (Hades) and the public trap routes that feed it.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_hades_user
from api.middleware.rate_limit import get_client_ip
from api.presenters import iso
from api.schemas.hub import ActionResponse, BlockIpRequest
from api.utils import action
from core.presentation import empty_state, toggle_sort
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import BlockStatus, HoneypotHit, User
from services.blocklist import BlocklistService
from services.honeypot import PER_PAGE, SORTABLE_COLUMNS, HoneypotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/honeypot", tags=["Hub - Honeypot"])

# Mounted at the application root, outside /api/v1.
trap_router = APIRouter(include_in_schema=False)

SEVERITY_COLORS = {"critical": "red", "warning": "amber"}


def hit_row(hit: HoneypotHit) -> dict:
    return {
        "id": hit.id,
        "ip_address": hit.ip_address,
        "path": hit.path,
        "user_agent": hit.user_agent,
        "bot_name": hit.bot_name,
        "is_bot": hit.is_bot,
        "severity": hit.severity,
        "severity_color": SEVERITY_COLORS.get(hit.severity, "zinc"),
        "country": hit.country,
        "created_at": iso(hit.created_at),
    }


@router.get("")
async def honeypot_panel(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    search: str = Query(""),
    bot: str = Query("", pattern="^(|0|1)$"),
    sort: str = Query("created_at"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    toggle: Optional[str] = Query(None, description="Column header clicked"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if sort not in SORTABLE_COLUMNS:
        sort = "created_at"
    if toggle in SORTABLE_COLUMNS:
        sort, direction = toggle_sort(sort, direction, toggle)
        page = 1

    honeypot = HoneypotService(db)
    stats = await honeypot.stats()
    listing = await honeypot.list_hits(
        search=search,
        bot_filter=bot,
        sort_field=sort,
        sort_direction=direction,
        page=page,
        per_page=PER_PAGE,
    )
    hits = [hit_row(h) for h in listing["items"]]

    empty_states = {}
    for key, items in (("honeypot_hits", hits), ("top_ips", stats["top_ips"]), ("top_bots", stats["top_bots"])):
        if not items:
            empty_states[key] = empty_state(key)

    return {
        "stats": stats,
        "hits": hits,
        "pagination": {k: listing[k] for k in ("total", "page", "page_size", "pages")},
        "filters": {"search": search, "bot": bot, "sort": sort, "direction": direction},
        "empty_states": empty_states,
    }


@router.post("/block", response_model=ActionResponse)
async def block_ip(
    body: BlockIpRequest,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    await BlocklistService(db).block(body.ip, body.reason, BlockStatus.APPROVED.value)
    logger.info("User %s blocked %s from the honeypot monitor", admin_user.id, body.ip)
    return action(f"IP {body.ip} has been blocked.")


@router.delete("/hits", response_model=ActionResponse)
async def delete_old_hits(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    days: int = Query(30, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    deleted = await HoneypotService(db).delete_old(days)
    return action(f"Deleted {deleted} old records.", deleted=deleted)


async def record_trap_hit(request: Request, path: str, db: AsyncSession) -> None:
    """Log the visit and answer like a missing page."""
    await HoneypotService(db).record_hit(
        ip=get_client_ip(request),
        path="/" + path.lstrip("/"),
        user_agent=request.headers.get("user-agent"),
        country=request.headers.get("cf-ipcountry"),
    )
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


def register_trap_routes(paths: list[str]) -> None:
    for trap in paths:
        trap_router.add_api_route(
            f"/{trap}",
            _trap_endpoint(trap),
            methods=["GET", "POST", "HEAD"],
            include_in_schema=False,
        )


def _trap_endpoint(trap: str):
    async def endpoint(request: Request, db: AsyncSession = Depends(get_db)) -> None:
        await record_trap_hit(request, trap, db)

    endpoint.__name__ = f"trap_{trap.replace('/', '_').replace('.', '_').replace('-', '_')}"
    return endpoint


register_trap_routes(settings.honeypot_trap_paths_list)
