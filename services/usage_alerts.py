"""
Usage alert service.

Emails workspace owners when a limit feature crosses 80%, 90% or 100% of
its allowance, once per threshold until usage falls back below it.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import ResendEmailService, email_service as default_email_service
from core.domain.entitlement import FeatureType, PackageStatus
from infrastructure.database.models import (
    Feature,
    UsageAlertHistory,
    User,
    Workspace,
    WorkspaceMember,
    WorkspacePackage,
    WorkspaceRole,
    utcnow,
)
from services.entitlements import EntitlementService

logger = logging.getLogger(__name__)

THRESHOLD_WARNING = 80
THRESHOLD_CRITICAL = 90
THRESHOLD_LIMIT = 100
THRESHOLDS = (THRESHOLD_LIMIT, THRESHOLD_CRITICAL, THRESHOLD_WARNING)


def applicable_threshold(percentage: Optional[float]) -> Optional[int]:
    """Highest threshold reached by percentage, or None."""
    if percentage is None:
        return None
    for threshold in THRESHOLDS:
        if percentage >= threshold:
            return threshold
    return None


class UsageAlertService:
    def __init__(
        self,
        db: AsyncSession,
        entitlements: Optional[EntitlementService] = None,
        mailer: Optional[ResendEmailService] = None,
    ):
        self.db = db
        self.entitlements = entitlements or EntitlementService(db)
        self.mailer = mailer or default_email_service

    async def check_all_workspaces(self) -> dict:
        """Check every active workspace holding an active package."""
        stats = {"checked": 0, "alerts_sent": 0, "alerts_resolved": 0}

        result = await self.db.execute(
            select(Workspace)
            .where(
                Workspace.is_active.is_(True),
                Workspace.id.in_(
                    select(WorkspacePackage.workspace_id).where(
                        WorkspacePackage.status == PackageStatus.ACTIVE.value
                    )
                ),
            )
            .order_by(Workspace.created_at)
        )
        for workspace in result.scalars().all():
            outcome = await self.check_workspace(workspace)
            stats["checked"] += 1
            stats["alerts_sent"] += outcome["alerts_sent"]
            stats["alerts_resolved"] += outcome["alerts_resolved"]

        return stats

    async def check_workspace(self, workspace: Workspace) -> dict:
        alerts_sent = 0
        alerts_resolved = 0
        details = []

        result = await self.db.execute(
            select(Feature).where(
                Feature.is_active.is_(True),
                Feature.type == FeatureType.LIMIT.value,
            )
        )
        for feature in result.unique().scalars().all():
            outcome = await self.check_feature_usage(workspace, feature)
            if outcome["alert_sent"]:
                alerts_sent += 1
            if outcome["resolved"]:
                alerts_resolved += 1
            if outcome["alert_sent"] or outcome["resolved"]:
                details.append(outcome)

        return {"alerts_sent": alerts_sent, "alerts_resolved": alerts_resolved, "details": details}

    async def check_feature_usage(self, workspace: Workspace, feature: Feature) -> dict:
        outcome = {
            "feature": feature.code,
            "percentage": None,
            "threshold": None,
            "alert_sent": False,
            "resolved": False,
        }

        check = await self.entitlements.can(workspace, feature.code)

        if check.is_unlimited or check.limit is None or check.limit == 0:
            outcome["resolved"] = await self.resolve_alert(workspace, feature.code) > 0
            return outcome

        percentage = check.usage_percentage
        outcome["percentage"] = percentage
        threshold = applicable_threshold(percentage)

        if threshold is None:
            outcome["resolved"] = await self.resolve_alert(workspace, feature.code) > 0
            return outcome

        outcome["threshold"] = threshold

        if await self._has_active_alert(workspace, feature.code, threshold):
            return outcome

        outcome["alert_sent"] = await self._send_alert(
            workspace, feature, threshold, check.used or 0, check.limit
        )
        return outcome

    async def _has_active_alert(self, workspace: Workspace, feature_code: str, threshold: int) -> bool:
        result = await self.db.execute(
            select(UsageAlertHistory.id).where(
                UsageAlertHistory.workspace_id == workspace.id,
                UsageAlertHistory.feature_code == feature_code,
                UsageAlertHistory.threshold == threshold,
                UsageAlertHistory.resolved_at.is_(None),
            )
        )
        return result.first() is not None

    async def get_owner(self, workspace: Workspace) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .join(WorkspaceMember, WorkspaceMember.user_id == User.id)
            .where(
                WorkspaceMember.workspace_id == workspace.id,
                WorkspaceMember.role == WorkspaceRole.OWNER.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _send_alert(
        self, workspace: Workspace, feature: Feature, threshold: int, used: int, limit: int
    ) -> bool:
        owner = await self.get_owner(workspace)
        if owner is None:
            logger.warning(
                "Cannot send usage alert: workspace %s has no owner (feature=%s threshold=%s)",
                workspace.id,
                feature.code,
                threshold,
            )
            return False

        self.db.add(
            UsageAlertHistory(
                workspace_id=workspace.id,
                feature_code=feature.code,
                threshold=threshold,
                notified_at=utcnow(),
                meta={
                    "used": used,
                    "limit": limit,
                    "percentage": round(used / limit * 100),
                    "notified_user_id": owner.id,
                },
            )
        )
        await self.db.commit()

        await self.mailer.send_usage_alert_email(
            to_email=owner.email,
            user_name=owner.name,
            workspace_name=workspace.name,
            feature_name=feature.name,
            threshold=threshold,
            used=used,
            limit=limit,
        )
        logger.info(
            "Usage alert sent for workspace %s feature %s at %s%% (%s/%s)",
            workspace.id,
            feature.code,
            threshold,
            used,
            limit,
            extra={"workspace_id": workspace.id, "user_id": owner.id},
        )
        return True

    async def get_active_alerts(self, workspace: Workspace) -> list[UsageAlertHistory]:
        result = await self.db.execute(
            select(UsageAlertHistory)
            .where(
                UsageAlertHistory.workspace_id == workspace.id,
                UsageAlertHistory.resolved_at.is_(None),
            )
            .order_by(UsageAlertHistory.threshold.desc(), UsageAlertHistory.notified_at.desc())
        )
        return list(result.scalars().all())

    async def resolve_alert(self, workspace: Workspace, feature_code: str) -> int:
        """Resolve every unresolved alert for the feature. Returns how many."""
        result = await self.db.execute(
            update(UsageAlertHistory)
            .where(
                UsageAlertHistory.workspace_id == workspace.id,
                UsageAlertHistory.feature_code == feature_code,
                UsageAlertHistory.resolved_at.is_(None),
            )
            .values(resolved_at=utcnow())
        )
        if result.rowcount:
            await self.db.commit()
        return result.rowcount or 0
