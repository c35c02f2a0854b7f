"""
Profile overview: tier, quotas, services and recent entitlement activity.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_current_workspace
from api.presenters import iso
from core.domain.entitlement import EntitlementAction, FeatureType
from core.plans import SERVICES, get_tier
from core.presentation import tier_color, usage_bar_color, with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import EntitlementLog, User, Workspace
from services.entitlements import EntitlementService
from services.workspaces import WorkspaceService

router = APIRouter(prefix="/hub/profile", tags=["Hub - Profile"])

ACTIVITY = {
    EntitlementAction.PACKAGE_PROVISIONED.value: ("Package added", "green"),
    EntitlementAction.PACKAGE_CANCELLED.value: ("Package cancelled", "red"),
    EntitlementAction.PACKAGE_SUSPENDED.value: ("Package suspended", "amber"),
    EntitlementAction.PACKAGE_REACTIVATED.value: ("Package reactivated", "green"),
    EntitlementAction.BOOST_PROVISIONED.value: ("Boost added", "blue"),
    EntitlementAction.BOOST_EXPIRED.value: ("Boost expired", "zinc"),
    EntitlementAction.BOOST_CANCELLED.value: ("Boost cancelled", "red"),
}


def initials(name: str) -> str:
    parts = [p for p in (name or "").split() if p]
    return "".join(p[0] for p in parts[:2]).upper() or "?"


def quota_row(key: str, label: str, used: int, limit: Optional[int]) -> dict:
    unlimited = limit is None or limit < 0
    percentage = None if unlimited or not limit else round(min(used / limit * 100, 100), 1)
    return {
        "key": key,
        "label": label,
        "used": used,
        "limit": None if unlimited else limit,
        "unlimited": unlimited,
        "percentage": percentage,
        "bar_color": usage_bar_color(percentage),
    }


def activity_row(log: EntitlementLog) -> dict:
    label, color = ACTIVITY.get(log.action, (log.action.replace("_", " ").capitalize(), "zinc"))
    detail = (log.new_values or {}).get("package_code") or (log.new_values or {}).get("feature_code")
    return {
        "message": f"{label}: {detail}" if detail else label,
        "color": color,
        "source": log.source,
        "time": iso(log.created_at),
    }


@router.get("")
async def profile(
    current_user: Annotated[User, Depends(get_current_user)],
    workspace: Annotated[Optional[Workspace], Depends(get_current_workspace)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    tier = get_tier(current_user.tier)
    workspaces = WorkspaceService(db)
    memberships = await workspaces.memberships(current_user)

    quotas = [
        quota_row("workspaces", "Workspaces", len(memberships), tier["max_workspaces"]),
    ]
    services = []
    activity = []

    if workspace is not None:
        entitlements = EntitlementService(db)
        for features in (await entitlements.get_usage_summary(workspace)).values():
            for feature in features:
                if feature["type"] == FeatureType.LIMIT.value and feature["allowed"]:
                    quotas.append(
                        quota_row(
                            feature["code"],
                            feature["name"],
                            feature["used"] or 0,
                            -1 if feature["unlimited"] else feature["limit"],
                        )
                    )

        for slug, service in SERVICES.items():
            active = current_user.is_hades or (
                await entitlements.can(workspace, service["feature_code"])
            ).allowed
            services.append(
                {
                    "slug": slug,
                    "name": service["name"],
                    "color": service["color"],
                    "icon": service["icon"],
                    "status": "active" if active else "inactive",
                    "stat": "Active" if active else "Inactive",
                }
            )

        result = await db.execute(
            select(EntitlementLog)
            .where(EntitlementLog.workspace_id == workspace.id)
            .order_by(EntitlementLog.created_at.desc())
            .limit(10)
        )
        activity = [activity_row(log) for log in result.scalars().all()]

    state = {
        "user": {
            "name": current_user.name,
            "email": current_user.email,
            "initials": initials(current_user.name),
            "tier": tier["name"],
            "tier_color": tier_color(current_user.tier),
        },
        "member_since": current_user.created_at.strftime("%B %Y") if current_user.created_at else None,
        "workspace": (
            {"id": workspace.id, "name": workspace.name, "slug": workspace.slug} if workspace else None
        ),
        "quotas": quotas,
        "services": services,
        "recent_activity": activity,
    }
    return with_empty_state(state, "activity", activity)
