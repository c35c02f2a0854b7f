"""
Unit tests for EntitlementService.

Covers limit checks, pooled child features, stacking, boosts,
suspension and cycle-aware boost expiry.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from core.domain.entitlement import BoostDuration, BoostStatus, BoostType, PackageStatus
from infrastructure.database.models import EntitlementLog, WorkspacePackage, utcnow
from services.entitlements import EntitlementError, EntitlementService


class TestCan:
    async def test_unknown_feature(self, db_session, workspace):
        result = await EntitlementService(db_session).can(workspace, "nope")
        assert result.is_denied
        assert result.reason == "Feature 'nope' does not exist."

    async def test_feature_not_in_plan(self, db_session, workspace, features):
        result = await EntitlementService(db_session).can(workspace, "ai.credits")
        assert result.is_denied
        assert result.reason == "Your plan does not include AI Credits."

    async def test_limit_allows_until_reached(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        result = await service.can(entitled_workspace, "ai.credits", 10)
        assert result.allowed
        assert result.limit == 100
        assert result.used == 0

        await service.record_usage(entitled_workspace, "ai.credits", 95)

        denied = await service.can(entitled_workspace, "ai.credits", 10)
        assert denied.is_denied
        assert denied.reason == "You've reached your AI Credits limit (100)."
        assert denied.used == 95
        assert (await service.can(entitled_workspace, "ai.credits", 5)).allowed

    async def test_child_feature_draws_from_parent_pool(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        record = await service.record_usage(entitled_workspace, "ai.credits.images", 30)
        assert record.feature_code == "ai.credits"

        result = await service.can(entitled_workspace, "ai.credits")
        assert result.used == 30

    async def test_boolean_feature(self, db_session, entitled_workspace):
        result = await EntitlementService(db_session).can(entitled_workspace, "core.srv.analytics")
        assert result.allowed
        assert result.limit is None

    async def test_stackable_addon_adds_limit(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.provision_package(entitled_workspace, "credits-pack")
        assert await service.get_total_limit(entitled_workspace, "ai.credits") == 150

    async def test_expired_usage_outside_window_ignored(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        record = await service.record_usage(entitled_workspace, "ai.credits", 80)
        record.recorded_at = utcnow() - timedelta(days=400)
        await db_session.commit()
        await service.invalidate_cache(entitled_workspace)

        assert (await service.can(entitled_workspace, "ai.credits")).used == 0


class TestBoosts:
    async def test_add_limit_boost(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.provision_boost(entitled_workspace, "ai.credits", limit_value=25)
        assert await service.get_total_limit(entitled_workspace, "ai.credits") == 125

    async def test_unlimited_boost(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.provision_boost(
            entitled_workspace,
            "ai.credits",
            boost_type=BoostType.UNLIMITED.value,
            duration_type=BoostDuration.PERMANENT.value,
        )
        result = await service.can(entitled_workspace, "ai.credits", 10_000)
        assert result.allowed
        assert result.is_unlimited

    async def test_boost_grants_feature_outside_plan(self, db_session, workspace, features):
        service = EntitlementService(db_session)
        await service.provision_boost(workspace, "ai.credits", limit_value=5)
        result = await service.can(workspace, "ai.credits", 5)
        assert result.allowed
        assert result.limit == 5

    async def test_cancelled_boost_no_longer_counts(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        boost = await service.provision_boost(entitled_workspace, "ai.credits", limit_value=25)
        await service.cancel_boost(entitled_workspace, boost)
        assert boost.status == BoostStatus.CANCELLED.value
        assert await service.get_total_limit(entitled_workspace, "ai.credits") == 100

    async def test_cycle_bound_expiry_keeps_current_cycle_boosts(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        old = await service.provision_boost(entitled_workspace, "ai.credits", limit_value=10)
        old.starts_at = utcnow() - timedelta(days=40)
        await db_session.commit()
        current = await service.provision_boost(entitled_workspace, "ai.credits", limit_value=20)

        cycle_start = await service.current_cycle_start(entitled_workspace)
        expired = await service.expire_cycle_bound_boosts(entitled_workspace, started_before=cycle_start)

        assert expired == 1
        assert old.status == BoostStatus.EXPIRED.value
        assert current.status == BoostStatus.ACTIVE.value

    async def test_cycle_bound_expiry_without_cutoff(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.provision_boost(entitled_workspace, "ai.credits", limit_value=10)
        assert await service.expire_cycle_bound_boosts(entitled_workspace) == 1
        assert await service.expire_cycle_bound_boosts(entitled_workspace) == 0

    async def test_timed_boost_expiry(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        boost = await service.provision_boost(
            entitled_workspace,
            "ai.credits",
            duration_type=BoostDuration.DURATION.value,
            limit_value=10,
            expires_at=utcnow() + timedelta(days=1),
        )
        assert await service.expire_timed_boosts(entitled_workspace) == 0

        boost.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()
        assert await service.expire_timed_boosts(entitled_workspace) == 1
        assert boost.status == BoostStatus.EXPIRED.value


class TestProvisioning:
    async def test_unknown_package(self, db_session, workspace):
        with pytest.raises(EntitlementError):
            await EntitlementService(db_session).provision_package(workspace, "platinum")

    async def test_new_base_package_cancels_previous(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.provision_package(entitled_workspace, "starter")

        result = await db_session.execute(
            select(WorkspacePackage).where(WorkspacePackage.workspace_id == entitled_workspace.id)
        )
        statuses = sorted(wp.status for wp in result.unique().scalars().all())
        assert statuses == [PackageStatus.ACTIVE.value, PackageStatus.CANCELLED.value]
        assert await service.get_total_limit(entitled_workspace, "ai.credits") == 100

    async def test_provisioning_is_logged(self, db_session, entitled_workspace):
        result = await db_session.execute(
            select(EntitlementLog).where(EntitlementLog.workspace_id == entitled_workspace.id)
        )
        actions = [log.action for log in result.scalars().all()]
        assert actions == ["package_provisioned"]

    async def test_revoke_package(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        revoked = await service.revoke_package(entitled_workspace, "starter")
        assert revoked.status == PackageStatus.CANCELLED.value
        assert (await service.can(entitled_workspace, "ai.credits")).is_denied
        assert await service.revoke_package(entitled_workspace, "starter") is None

    async def test_suspend_and_reactivate(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.suspend_workspace(entitled_workspace)
        assert (await service.can(entitled_workspace, "ai.credits")).is_denied

        await service.reactivate_workspace(entitled_workspace)
        assert (await service.can(entitled_workspace, "ai.credits")).allowed


class TestUsageSummary:
    async def test_grouped_by_category(self, db_session, entitled_workspace):
        service = EntitlementService(db_session)
        await service.record_usage(entitled_workspace, "ai.credits", 85)

        summary = await service.get_usage_summary(entitled_workspace)

        assert list(summary) == ["ai", "platform", "service"]
        credits = summary["ai"][0]
        assert credits["code"] == "ai.credits"
        assert credits["used"] == 85
        assert credits["remaining"] == 15
        assert credits["near_limit"] is True
        assert summary["platform"][0]["allowed"] is False
