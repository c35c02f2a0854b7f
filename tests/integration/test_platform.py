"""Integration tests for platform administration and single-user management."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entitlement import BoostStatus, PackageStatus
from infrastructure.database.models import AdminAuditLog, Boost, User, Workspace, WorkspacePackage
from services.cache import cache
from services.entitlements import EntitlementService
from services.user_data import UserDataService

from tests.conftest import make_user

pytestmark = pytest.mark.asyncio


async def audit_actions(db: AsyncSession) -> list[str]:
    result = await db.execute(select(AdminAuditLog).order_by(AdminAuditLog.created_at))
    return [log.action for log in result.scalars().all()]


class TestAccess:
    async def test_requires_hades(self, async_client: AsyncClient, apollo_headers: dict):
        response = await async_client.get("/api/v1/admin/platform", headers=apollo_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Hades tier required for platform administration."

    async def test_user_panel_requires_hades(self, async_client: AsyncClient, auth_headers: dict, test_user: User):
        response = await async_client.get(f"/api/v1/admin/platform/users/{test_user.id}", headers=auth_headers)
        assert response.status_code == 403


class TestPlatformDashboard:
    async def test_stats_and_users(
        self, async_client: AsyncClient, hades_headers: dict, test_user: User, apollo_user: User
    ):
        response = await async_client.get("/api/v1/admin/platform", headers=hades_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["total_users"] == 3
        assert data["stats"]["hades_users"] == 1
        assert data["stats"]["apollo_users"] == 1
        assert data["stats"]["free_users"] == 1
        assert data["system_info"]["cache_driver"] == "memory"
        assert data["tiers"] == ["free", "apollo", "hades"]
        assert data["pagination"]["total"] == 3

    async def test_filters(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User, apollo_user: User
    ):
        await make_user(db_session, "pending@example.com", "Pending Person", verified=False)

        by_tier = (
            await async_client.get("/api/v1/admin/platform", params={"tier": "apollo"}, headers=hades_headers)
        ).json()
        assert [u["email"] for u in by_tier["users"]] == ["apollo@example.com"]
        assert by_tier["users"][0]["tier_color"] == "blue"

        unverified = (
            await async_client.get("/api/v1/admin/platform", params={"verified": "0"}, headers=hades_headers)
        ).json()
        assert [u["email"] for u in unverified["users"]] == ["pending@example.com"]

        searched = (
            await async_client.get("/api/v1/admin/platform", params={"search": "pending"}, headers=hades_headers)
        ).json()
        assert searched["pagination"]["total"] == 1

    async def test_sort_by_email(self, async_client: AsyncClient, hades_headers: dict, test_user: User, apollo_user: User):
        data = (
            await async_client.get(
                "/api/v1/admin/platform", params={"sort": "email", "direction": "asc"}, headers=hades_headers
            )
        ).json()
        assert [u["email"] for u in data["users"]] == [
            "apollo@example.com",
            "hades@example.com",
            "test@example.com",
        ]

    async def test_no_matches(self, async_client: AsyncClient, hades_headers: dict):
        data = (
            await async_client.get("/api/v1/admin/platform", params={"search": "zzz"}, headers=hades_headers)
        ).json()
        assert data["users"] == []
        assert data["empty_state"] == "No results found"

    async def test_invalid_sort_rejected(self, async_client: AsyncClient, hades_headers: dict):
        response = await async_client.get(
            "/api/v1/admin/platform", params={"sort": "password_hash"}, headers=hades_headers
        )
        assert response.status_code == 422


class TestDevOpsActions:
    async def test_verify_email(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict
    ):
        user = await make_user(db_session, "pending@example.com", "Pending Person", verified=False)

        response = await async_client.post(
            f"/api/v1/admin/platform/users/{user.id}/verify-email", headers=hades_headers
        )

        assert response.json()["message"] == "Email verified for pending@example.com."
        await db_session.refresh(user)
        assert user.email_verified_at is not None
        assert await audit_actions(db_session) == ["email_verified"]

    async def test_verify_unknown_user(self, async_client: AsyncClient, hades_headers: dict):
        response = await async_client.post("/api/v1/admin/platform/users/missing/verify-email", headers=hades_headers)
        assert response.status_code == 404

    async def test_clear_cache(self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict):
        await cache.set("stale", 1)

        response = await async_client.post("/api/v1/admin/platform/clear-cache", headers=hades_headers)

        assert response.json()["message"] == "Application cache cleared."
        assert await cache.get("stale") is None
        assert await audit_actions(db_session) == ["cache_cleared"]

    async def test_restart_queue(self, async_client: AsyncClient, hades_headers: dict):
        response = await async_client.post("/api/v1/admin/platform/restart-queue", headers=hades_headers)

        assert response.json()["message"] == "Queue workers signalled to restart."
        assert await cache.get("queue:restart") is not None


class TestPlatformUserPanel:
    async def test_overview(self, async_client: AsyncClient, hades_headers: dict, test_user: User, workspace: Workspace):
        data = (
            await async_client.get(f"/api/v1/admin/platform/users/{test_user.id}", headers=hades_headers)
        ).json()

        assert data["tab"] == "overview"
        assert data["user"]["email"] == "test@example.com"
        assert data["data_counts"]["workspaces"] == 1

    async def test_unknown_tab_falls_back(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        data = (
            await async_client.get(
                f"/api/v1/admin/platform/users/{test_user.id}", params={"tab": "secrets"}, headers=hades_headers
            )
        ).json()
        assert data["tab"] == "overview"

    async def test_workspaces_tab(
        self, async_client: AsyncClient, hades_headers: dict, test_user: User, entitled_workspace: Workspace
    ):
        data = (
            await async_client.get(
                f"/api/v1/admin/platform/users/{test_user.id}", params={"tab": "workspaces"}, headers=hades_headers
            )
        ).json()

        assert data["workspaces"][0]["slug"] == "main"
        assert data["workspaces"][0]["status_color"] == "green"
        assert [p["code"] for p in data["workspaces"][0]["packages"]] == ["starter"]
        assert [p["code"] for p in data["available_packages"]] == ["starter", "credits-pack"]

    async def test_entitlements_tab(
        self, async_client: AsyncClient, hades_headers: dict, test_user: User, entitled_workspace: Workspace
    ):
        data = (
            await async_client.get(
                f"/api/v1/admin/platform/users/{test_user.id}", params={"tab": "entitlements"}, headers=hades_headers
            )
        ).json()

        entry = data["workspace_entitlements"][0]
        assert entry["stats"]["total"] == 4
        assert entry["stats"]["denied"] == 1
        assert entry["stats"]["boosts"] == 0
        assert {f["code"] for f in data["features"]} == {
            "ai.credits",
            "ai.credits.images",
            "core.srv.analytics",
            "core.api",
        }

    async def test_data_tab(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        data = (
            await async_client.get(
                f"/api/v1/admin/platform/users/{test_user.id}", params={"tab": "data"}, headers=hades_headers
            )
        ).json()
        assert data["user_data"]["account"]["email"] == "test@example.com"

    async def test_danger_tab(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        await UserDataService(db_session).schedule_deletion(test_user)

        data = (
            await async_client.get(
                f"/api/v1/admin/platform/users/{test_user.id}", params={"tab": "danger"}, headers=hades_headers
            )
        ).json()
        assert data["pending_deletion"]["status"] == "pending"
        assert data["pending_deletion"]["reason"] == "Admin initiated - GDPR request"

    async def test_unknown_user(self, async_client: AsyncClient, hades_headers: dict):
        response = await async_client.get("/api/v1/admin/platform/users/missing", headers=hades_headers)
        assert response.status_code == 404


class TestAccountActions:
    async def test_save_tier(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        response = await async_client.put(
            f"/api/v1/admin/platform/users/{test_user.id}/tier", json={"tier": "apollo"}, headers=hades_headers
        )

        assert response.json()["message"] == "Tier updated to apollo."
        await db_session.refresh(test_user)
        assert test_user.tier == "apollo"
        log = (await db_session.execute(select(AdminAuditLog))).scalar_one()
        assert log.details["old_value"] == "free"

    async def test_invalid_tier(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        response = await async_client.put(
            f"/api/v1/admin/platform/users/{test_user.id}/tier", json={"tier": "zeus"}, headers=hades_headers
        )
        assert response.status_code == 422

    async def test_save_verification(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        response = await async_client.put(
            f"/api/v1/admin/platform/users/{test_user.id}/verification",
            json={"verified": False},
            headers=hades_headers,
        )

        assert response.json()["message"] == "Email verification removed."
        await db_session.refresh(test_user)
        assert test_user.email_verified_at is None

    async def test_resend_verification(self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict):
        user = await make_user(db_session, "pending@example.com", "Pending Person", verified=False)

        with patch(
            "api.routes.platform_user.email_service.send_verification_email", new_callable=AsyncMock
        ) as send:
            response = await async_client.post(
                f"/api/v1/admin/platform/users/{user.id}/resend-verification", headers=hades_headers
            )

        assert response.json()["message"] == "Verification email sent to pending@example.com."
        send.assert_awaited_once()

    async def test_resend_when_verified(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/resend-verification", headers=hades_headers
        )
        assert response.json()["level"] == "warning"
        assert response.json()["message"] == "User email is already verified."

    async def test_export(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        response = await async_client.get(
            f"/api/v1/admin/platform/users/{test_user.id}/export", headers=hades_headers
        )

        assert response.status_code == 200
        assert f'filename="user-data-{test_user.id}-' in response.headers["content-disposition"]
        assert response.json()["account"]["email"] == "test@example.com"
        assert await audit_actions(db_session) == ["data_export"]


class TestDeletion:
    async def test_schedule_and_cancel(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/delete", json={}, headers=hades_headers
        )
        assert response.json()["level"] == "warning"
        assert response.json()["message"] == "Account deletion scheduled. Will be deleted in 7 days unless cancelled."

        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/cancel-deletion", headers=hades_headers
        )
        assert response.json()["message"] == "Pending deletion cancelled."

        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/cancel-deletion", headers=hades_headers
        )
        assert response.json()["message"] == "No pending deletion request found."

    async def test_immediate_delete(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        user_id = test_user.id

        response = await async_client.post(
            f"/api/v1/admin/platform/users/{user_id}/delete",
            json={"reason": "Requested", "immediate": True},
            headers=hades_headers,
        )

        assert response.json()["message"] == "User account deleted."
        remaining = await db_session.execute(select(User).where(User.id == user_id))
        assert remaining.scalar_one_or_none() is None

    async def test_cannot_delete_self(self, async_client: AsyncClient, hades_headers: dict, hades_user: User):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{hades_user.id}/delete", json={}, headers=hades_headers
        )
        assert response.json()["level"] == "error"
        assert response.json()["success"] is False

    async def test_anonymize(
        self, async_client: AsyncClient, db_session: AsyncSession, hades_headers: dict, test_user: User
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/anonymize", headers=hades_headers
        )

        assert response.json()["message"] == "User data anonymized."
        await db_session.refresh(test_user)
        assert test_user.name == "Anonymized User"
        log = (await db_session.execute(select(AdminAuditLog))).scalar_one()
        assert log.details["original_email"] == "test@example.com"

    async def test_cannot_anonymize_self(self, async_client: AsyncClient, hades_headers: dict, hades_user: User):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{hades_user.id}/anonymize", headers=hades_headers
        )
        assert response.json()["message"] == "You cannot anonymize your own account."


class TestPackagesAndEntitlements:
    async def test_provision_package(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hades_headers: dict,
        test_user: User,
        workspace: Workspace,
        packages: dict,
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/packages",
            json={"workspace_id": workspace.id, "package_code": "starter"},
            headers=hades_headers,
        )

        assert response.json()["message"] == "Package 'Starter' provisioned to workspace 'Main Site'."
        assert (await EntitlementService(db_session).can(workspace, "ai.credits")).allowed

    async def test_provision_needs_selection(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/packages", json={}, headers=hades_headers
        )
        assert response.json()["message"] == "Please select a workspace and package."

    async def test_provision_to_foreign_workspace(
        self,
        async_client: AsyncClient,
        hades_headers: dict,
        test_user: User,
        workspace: Workspace,
        hades_workspace: Workspace,
        packages: dict,
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/packages",
            json={"workspace_id": hades_workspace.id, "package_code": "starter"},
            headers=hades_headers,
        )
        assert response.json()["message"] == "This workspace does not belong to this user."

    async def test_provision_unknown_package(
        self, async_client: AsyncClient, hades_headers: dict, test_user: User, workspace: Workspace
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/packages",
            json={"workspace_id": workspace.id, "package_code": "platinum"},
            headers=hades_headers,
        )
        assert response.status_code == 404

    async def test_revoke_package(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hades_headers: dict,
        test_user: User,
        entitled_workspace: Workspace,
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/packages/revoke",
            json={"workspace_id": entitled_workspace.id, "package_code": "starter"},
            headers=hades_headers,
        )

        assert response.json()["message"] == "Package 'Starter' revoked from workspace 'Main Site'."
        result = await db_session.execute(
            select(WorkspacePackage).where(WorkspacePackage.workspace_id == entitled_workspace.id)
        )
        assert [wp.status for wp in result.unique().scalars().all()] == [PackageStatus.CANCELLED.value]

    async def test_provision_boost(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hades_headers: dict,
        test_user: User,
        entitled_workspace: Workspace,
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/entitlements",
            json={
                "workspace_id": entitled_workspace.id,
                "feature_code": "ai.credits",
                "type": "add_limit",
                "limit_value": 40,
            },
            headers=hades_headers,
        )

        assert response.json()["message"] == "Entitlement 'AI Credits' added to workspace 'Main Site'."
        assert await EntitlementService(db_session).get_total_limit(entitled_workspace, "ai.credits") == 140

    async def test_provision_unknown_feature(
        self, async_client: AsyncClient, hades_headers: dict, test_user: User, workspace: Workspace
    ):
        response = await async_client.post(
            f"/api/v1/admin/platform/users/{test_user.id}/entitlements",
            json={"workspace_id": workspace.id, "feature_code": "nope"},
            headers=hades_headers,
        )
        assert response.json()["message"] == "Feature not found."

    async def test_remove_boost(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hades_headers: dict,
        test_user: User,
        entitled_workspace: Workspace,
    ):
        boost = await EntitlementService(db_session).provision_boost(entitled_workspace, "ai.credits", limit_value=5)

        response = await async_client.delete(
            f"/api/v1/admin/platform/users/{test_user.id}/boosts/{boost.id}", headers=hades_headers
        )

        assert response.json()["message"] == "Boost removed."
        await db_session.refresh(boost)
        assert boost.status == BoostStatus.CANCELLED.value

    async def test_remove_unknown_boost(self, async_client: AsyncClient, hades_headers: dict, test_user: User):
        response = await async_client.delete(
            f"/api/v1/admin/platform/users/{test_user.id}/boosts/missing", headers=hades_headers
        )
        assert response.status_code == 404

    async def test_remove_boost_of_other_user(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hades_headers: dict,
        apollo_user: User,
        entitled_workspace: Workspace,
    ):
        boost = await EntitlementService(db_session).provision_boost(entitled_workspace, "ai.credits", limit_value=5)

        response = await async_client.delete(
            f"/api/v1/admin/platform/users/{apollo_user.id}/boosts/{boost.id}", headers=hades_headers
        )
        assert response.json()["message"] == "This boost does not belong to this user."
        stored = (await db_session.execute(select(Boost).where(Boost.id == boost.id))).scalar_one()
        assert stored.status == BoostStatus.ACTIVE.value
