"""
Entitlement service.

Answers "can this workspace use feature X (for N units)?" from the
workspace's active packages plus boosts, meters usage, and provisions or
revokes packages and boosts with an audit trail.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entitlement import (
    UNLIMITED,
    BoostDuration,
    BoostStatus,
    BoostType,
    EntitlementAction,
    EntitlementResult,
    EntitlementSource,
    FeatureType,
    PackageStatus,
    ResetType,
    current_cycle_start,
)
from infrastructure.database.models import (
    Boost,
    EntitlementLog,
    Feature,
    Package,
    UsageRecord,
    User,
    Workspace,
    WorkspacePackage,
    ensure_utc,
    utcnow,
)
from services.cache import HubCache, cache as default_cache

logger = logging.getLogger(__name__)

LIMIT_CACHE_TTL = 300
USAGE_CACHE_TTL = 60


class EntitlementError(Exception):
    """Unknown package or feature, or an invalid provisioning request."""


class EntitlementService:
    """Entitlement checks, usage metering and provisioning for workspaces."""

    def __init__(self, db: AsyncSession, cache: Optional[HubCache] = None):
        self.db = db
        self.cache = cache or default_cache

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_feature(self, code: str) -> Optional[Feature]:
        result = await self.db.execute(select(Feature).where(Feature.code == code))
        return result.scalar_one_or_none()

    async def get_package(self, code: str) -> Optional[Package]:
        result = await self.db.execute(select(Package).where(Package.code == code))
        return result.scalar_one_or_none()

    async def get_active_packages(self, workspace: Workspace) -> list[WorkspacePackage]:
        """Active, unexpired packages provisioned to the workspace."""
        now = utcnow()
        result = await self.db.execute(
            select(WorkspacePackage)
            .where(
                WorkspacePackage.workspace_id == workspace.id,
                WorkspacePackage.status == PackageStatus.ACTIVE.value,
                (WorkspacePackage.expires_at.is_(None)) | (WorkspacePackage.expires_at > now),
            )
            .order_by(WorkspacePackage.created_at)
        )
        return list(result.unique().scalars().all())

    async def get_active_boosts(self, workspace: Workspace) -> list[Boost]:
        """Usable boosts ordered by expiry."""
        result = await self.db.execute(
            select(Boost)
            .where(
                Boost.workspace_id == workspace.id,
                Boost.status == BoostStatus.ACTIVE.value,
            )
            .order_by(Boost.expires_at)
        )
        return [b for b in result.scalars().all() if b.is_usable]

    async def _usable_boosts(self, workspace: Workspace, feature_code: str) -> list[Boost]:
        result = await self.db.execute(
            select(Boost).where(
                Boost.workspace_id == workspace.id,
                Boost.feature_code == feature_code,
                Boost.status == BoostStatus.ACTIVE.value,
            )
        )
        return [b for b in result.scalars().all() if b.is_usable]

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def can(
        self, workspace: Workspace, feature_code: str, quantity: int = 1
    ) -> EntitlementResult:
        """Check whether the workspace may consume quantity units of a feature."""
        feature = await self.get_feature(feature_code)
        if feature is None:
            return EntitlementResult.denied(
                f"Feature '{feature_code}' does not exist.", feature_code=feature_code
            )

        pool_code = feature.pool_code
        total_limit = await self.get_total_limit(workspace, pool_code)

        if total_limit is None:
            return EntitlementResult.denied(
                f"Your plan does not include {feature.name}.", feature_code=feature_code
            )

        if total_limit == UNLIMITED:
            return EntitlementResult.unlimited(feature_code)

        if feature.is_boolean:
            return EntitlementResult.allowed_result(feature_code=feature_code)

        used = await self.get_current_usage(workspace, pool_code, feature)

        if used + quantity > total_limit:
            return EntitlementResult.denied(
                f"You've reached your {feature.name} limit ({total_limit}).",
                limit=total_limit,
                used=used,
                feature_code=feature_code,
            )

        return EntitlementResult.allowed_result(
            limit=total_limit, used=used, feature_code=feature_code
        )

    async def get_total_limit(self, workspace: Workspace, feature_code: str) -> Optional[int]:
        """
        Sum of the feature's limits across packages and boosts.

        Returns None when the feature is granted nowhere, -1 for unlimited,
        otherwise the summed limit (0 for a boolean-only grant).
        """

        async def compute() -> Optional[int]:
            feature = await self.get_feature(feature_code)
            if feature is None:
                return None

            total = 0
            has_feature = False

            for workspace_package in await self.get_active_packages(workspace):
                for package_feature in workspace_package.package.features:
                    if package_feature.feature.code != feature_code:
                        continue
                    has_feature = True
                    if package_feature.feature.type == FeatureType.UNLIMITED.value:
                        return UNLIMITED
                    if package_feature.limit_value is not None:
                        total += package_feature.limit_value

            for boost in await self._usable_boosts(workspace, feature_code):
                has_feature = True
                if boost.boost_type == BoostType.UNLIMITED.value:
                    return UNLIMITED
                if boost.boost_type == BoostType.ADD_LIMIT.value:
                    total += boost.remaining_limit

            return total if has_feature else None

        return await self.cache.remember(
            f"entitlement:{workspace.id}:limit:{feature_code}", LIMIT_CACHE_TTL, compute
        )

    async def _usage_window_start(self, workspace: Workspace, feature: Feature) -> Optional[datetime]:
        now = utcnow()
        if feature.reset_type == ResetType.MONTHLY.value:
            cycle_start = await self.current_cycle_start(workspace)
            if cycle_start is not None:
                return cycle_start
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if feature.reset_type == ResetType.ROLLING.value:
            return now - timedelta(days=feature.rolling_window_days or 30)
        return None

    async def get_current_usage(
        self, workspace: Workspace, feature_code: str, feature: Feature
    ) -> int:
        """Usage of feature_code within the feature's reset window."""

        async def compute() -> int:
            since = await self._usage_window_start(workspace, feature)
            query = select(func.coalesce(func.sum(UsageRecord.quantity), 0)).where(
                UsageRecord.workspace_id == workspace.id,
                UsageRecord.feature_code == feature_code,
            )
            if since is not None:
                query = query.where(UsageRecord.recorded_at >= since)
            return int((await self.db.execute(query)).scalar_one())

        return await self.cache.remember(
            f"entitlement:{workspace.id}:usage:{feature_code}", USAGE_CACHE_TTL, compute
        )

    async def record_usage(
        self,
        workspace: Workspace,
        feature_code: str,
        quantity: int = 1,
        user: Optional[User] = None,
        metadata: Optional[dict] = None,
    ) -> UsageRecord:
        """Meter usage against the feature's pool code."""
        feature = await self.get_feature(feature_code)
        pool_code = feature.pool_code if feature else feature_code

        record = UsageRecord(
            workspace_id=workspace.id,
            feature_code=pool_code,
            quantity=quantity,
            user_id=user.id if user else None,
            meta=metadata,
            recorded_at=utcnow(),
        )
        self.db.add(record)
        await self.db.commit()
        await self.invalidate_cache(workspace)
        return record

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def _log(
        self,
        workspace: Workspace,
        action: EntitlementAction,
        entity: Any,
        source: str,
        user: Optional[User] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ) -> EntitlementLog:
        log = EntitlementLog(
            workspace_id=workspace.id,
            user_id=user.id if user else None,
            action=action.value,
            entity_type="boost" if isinstance(entity, Boost) else "workspace_package",
            entity_id=entity.id,
            source=source,
            old_values=old_values,
            new_values=new_values,
            meta=metadata,
        )
        self.db.add(log)
        return log

    async def provision_package(
        self,
        workspace: Workspace,
        package_code: str,
        source: str = EntitlementSource.SYSTEM.value,
        starts_at: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        billing_cycle_anchor: Optional[datetime] = None,
        metadata: Optional[dict] = None,
        user: Optional[User] = None,
    ) -> WorkspacePackage:
        """
        Provision a package to a workspace.

        A base package replaces (cancels) any active base package.

        Raises:
            EntitlementError: If the package code is unknown
        """
        package = await self.get_package(package_code)
        if package is None:
            raise EntitlementError(f"Package '{package_code}' does not exist.")

        now = utcnow()

        if package.is_base_package:
            for existing in await self.get_active_packages(workspace):
                if existing.package.is_base_package:
                    existing.status = PackageStatus.CANCELLED.value
                    existing.expires_at = now
                    self._log(
                        workspace,
                        EntitlementAction.PACKAGE_CANCELLED,
                        existing,
                        source,
                        user=user,
                        metadata={"reason": "Replaced by new base package"},
                    )

        workspace_package = WorkspacePackage(
            workspace_id=workspace.id,
            package_id=package.id,
            status=PackageStatus.ACTIVE.value,
            starts_at=starts_at or now,
            expires_at=expires_at,
            billing_cycle_anchor=billing_cycle_anchor or now,
            meta=metadata,
        )
        self.db.add(workspace_package)
        await self.db.flush()

        self._log(
            workspace,
            EntitlementAction.PACKAGE_PROVISIONED,
            workspace_package,
            source,
            user=user,
            new_values={"package_code": package.code, "status": workspace_package.status},
        )
        await self.db.commit()
        await self.db.refresh(workspace_package)
        await self.invalidate_cache(workspace)

        logger.info("Provisioned package %s to workspace %s", package.code, workspace.id)
        return workspace_package

    async def provision_boost(
        self,
        workspace: Workspace,
        feature_code: str,
        boost_type: str = BoostType.ADD_LIMIT.value,
        duration_type: str = BoostDuration.CYCLE_BOUND.value,
        limit_value: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        source: str = EntitlementSource.SYSTEM.value,
        metadata: Optional[dict] = None,
        user: Optional[User] = None,
    ) -> Boost:
        boost = Boost(
            workspace_id=workspace.id,
            feature_code=feature_code,
            boost_type=boost_type,
            duration_type=duration_type,
            limit_value=limit_value,
            consumed_quantity=0,
            status=BoostStatus.ACTIVE.value,
            starts_at=utcnow(),
            expires_at=expires_at,
            meta=metadata,
        )
        self.db.add(boost)
        await self.db.flush()

        self._log(
            workspace,
            EntitlementAction.BOOST_PROVISIONED,
            boost,
            source,
            user=user,
            new_values={
                "feature_code": feature_code,
                "boost_type": boost_type,
                "duration_type": duration_type,
                "limit_value": limit_value,
            },
        )
        await self.db.commit()
        await self.invalidate_cache(workspace)
        return boost

    async def suspend_workspace(
        self, workspace: Workspace, source: str = EntitlementSource.SYSTEM.value
    ) -> None:
        result = await self.db.execute(
            select(WorkspacePackage).where(
                WorkspacePackage.workspace_id == workspace.id,
                WorkspacePackage.status == PackageStatus.ACTIVE.value,
            )
        )
        for workspace_package in result.unique().scalars().all():
            workspace_package.status = PackageStatus.SUSPENDED.value
            self._log(workspace, EntitlementAction.PACKAGE_SUSPENDED, workspace_package, source)
        await self.db.commit()
        await self.invalidate_cache(workspace)

    async def reactivate_workspace(
        self, workspace: Workspace, source: str = EntitlementSource.SYSTEM.value
    ) -> None:
        result = await self.db.execute(
            select(WorkspacePackage).where(
                WorkspacePackage.workspace_id == workspace.id,
                WorkspacePackage.status == PackageStatus.SUSPENDED.value,
            )
        )
        for workspace_package in result.unique().scalars().all():
            workspace_package.status = PackageStatus.ACTIVE.value
            self._log(workspace, EntitlementAction.PACKAGE_REACTIVATED, workspace_package, source)
        await self.db.commit()
        await self.invalidate_cache(workspace)

    async def revoke_package(
        self,
        workspace: Workspace,
        package_code: str,
        source: str = EntitlementSource.SYSTEM.value,
        user: Optional[User] = None,
    ) -> Optional[WorkspacePackage]:
        """Cancel the workspace's active package with this code; no-op when absent."""
        target = None
        for workspace_package in await self.get_active_packages(workspace):
            if workspace_package.package.code == package_code:
                target = workspace_package
                break

        if target is None:
            return None

        target.status = PackageStatus.CANCELLED.value
        target.expires_at = utcnow()
        self._log(
            workspace,
            EntitlementAction.PACKAGE_CANCELLED,
            target,
            source,
            user=user,
            metadata={"reason": "Package revoked"},
        )
        await self.db.commit()
        await self.invalidate_cache(workspace)
        return target

    async def cancel_boost(
        self,
        workspace: Workspace,
        boost: Boost,
        source: str = EntitlementSource.SYSTEM.value,
        user: Optional[User] = None,
    ) -> Boost:
        old_status = boost.status
        boost.status = BoostStatus.CANCELLED.value
        self._log(
            workspace,
            EntitlementAction.BOOST_CANCELLED,
            boost,
            source,
            user=user,
            old_values={"status": old_status},
            new_values={"status": boost.status},
        )
        await self.db.commit()
        await self.invalidate_cache(workspace)
        return boost

    async def current_cycle_start(self, workspace: Workspace) -> Optional[datetime]:
        """Start of the base package's current billing cycle, if it has one."""
        for workspace_package in await self.get_active_packages(workspace):
            if workspace_package.package.is_base_package:
                anchor = ensure_utc(workspace_package.billing_cycle_anchor or workspace_package.starts_at)
                if anchor is not None:
                    return current_cycle_start(anchor, utcnow())
        return None

    async def expire_cycle_bound_boosts(
        self, workspace: Workspace, started_before: Optional[datetime] = None
    ) -> int:
        """
        Expire active cycle-bound boosts when the billing cycle ends.

        With started_before, only boosts that began before that moment
        (that is, in an earlier cycle) are expired.
        """
        query = select(Boost).where(
            Boost.workspace_id == workspace.id,
            Boost.duration_type == BoostDuration.CYCLE_BOUND.value,
            Boost.status == BoostStatus.ACTIVE.value,
        )
        if started_before is not None:
            query = query.where(func.coalesce(Boost.starts_at, Boost.created_at) < started_before)
        result = await self.db.execute(query)
        boosts = list(result.scalars().all())
        if not boosts:
            return 0
        for boost in boosts:
            boost.status = BoostStatus.EXPIRED.value
            self._log(
                workspace,
                EntitlementAction.BOOST_EXPIRED,
                boost,
                EntitlementSource.SYSTEM.value,
                metadata={"reason": "Billing cycle ended"},
            )
        await self.db.commit()
        await self.invalidate_cache(workspace)
        return len(boosts)

    async def expire_timed_boosts(self, workspace: Workspace) -> int:
        """Expire duration boosts whose expires_at has passed."""
        now = utcnow()
        result = await self.db.execute(
            select(Boost).where(
                Boost.workspace_id == workspace.id,
                Boost.duration_type == BoostDuration.DURATION.value,
                Boost.status == BoostStatus.ACTIVE.value,
                Boost.expires_at.is_not(None),
                Boost.expires_at <= now,
            )
        )
        boosts = list(result.scalars().all())
        for boost in boosts:
            boost.status = BoostStatus.EXPIRED.value
            self._log(
                workspace,
                EntitlementAction.BOOST_EXPIRED,
                boost,
                EntitlementSource.SYSTEM.value,
                metadata={"reason": "Boost duration ended"},
            )
        if boosts:
            await self.db.commit()
            await self.invalidate_cache(workspace)
        return len(boosts)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    async def get_usage_summary(self, workspace: Workspace) -> "OrderedDict[str, list[dict]]":
        """Every active feature's entitlement, grouped by category."""
        result = await self.db.execute(
            select(Feature)
            .where(Feature.is_active.is_(True))
            .order_by(Feature.category, Feature.sort_order)
        )
        summary: "OrderedDict[str, list[dict]]" = OrderedDict()
        for feature in result.unique().scalars().all():
            check = await self.can(workspace, feature.code)
            summary.setdefault(feature.category or "general", []).append(
                {
                    "code": feature.code,
                    "name": feature.name,
                    "category": feature.category,
                    "type": feature.type,
                    "allowed": check.allowed,
                    "limit": check.limit,
                    "used": check.used,
                    "remaining": check.remaining,
                    "unlimited": check.is_unlimited,
                    "percentage": check.usage_percentage,
                    "near_limit": check.near_limit,
                }
            )
        return summary

    async def invalidate_cache(self, workspace: Workspace) -> None:
        await self.cache.delete_prefix(f"entitlement:{workspace.id}:")
