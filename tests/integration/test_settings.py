"""Integration tests for account settings, the profile page and site settings."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.security.password import password_hasher
from infrastructure.database.models import User, UserSetting, Workspace
from services.entitlements import EntitlementService
from services.user_data import UserDataService

from tests.conftest import TEST_PASSWORD

pytestmark = pytest.mark.asyncio


class TestSettingsPanel:
    async def test_default_section(self, async_client: AsyncClient, auth_headers: dict, test_user: User):
        data = (await async_client.get("/api/v1/hub/settings", headers=auth_headers)).json()

        assert data["section"] == "profile"
        assert data["profile"] == {"name": "Test User", "email": "test@example.com"}
        assert data["preferences"]["timezone"] == "Europe/London"
        assert data["two_factor"] == {"available": False, "enabled": False}
        assert data["pending_deletion"] is None
        assert "timezones" not in data

    async def test_preferences_section_lists_choices(self, async_client: AsyncClient, auth_headers: dict):
        data = (
            await async_client.get("/api/v1/hub/settings", params={"section": "preferences"}, headers=auth_headers)
        ).json()

        assert data["locales"]["en_GB"] == "English (UK)"
        assert "Europe/London" in data["timezones"]


class TestProfileUpdate:
    async def test_update(self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User):
        response = await async_client.put(
            "/api/v1/hub/settings/profile",
            json={"name": " Renamed ", "email": "Renamed@Example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully."
        await db_session.refresh(test_user)
        assert test_user.name == "Renamed"
        assert test_user.email == "renamed@example.com"

    async def test_validation(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.put(
            "/api/v1/hub/settings/profile",
            json={"name": "", "email": "not-an-email"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"] == {
            "name": "The name field is required.",
            "email": "The email must be a valid email address.",
        }

    async def test_email_taken(self, async_client: AsyncClient, auth_headers: dict, apollo_user: User):
        response = await async_client.put(
            "/api/v1/hub/settings/profile",
            json={"name": "Test User", "email": apollo_user.email},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["detail"]["email"] == "The email has already been taken."


class TestPreferences:
    async def test_update_then_update_again(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User
    ):
        body = {"locale": "de_DE", "timezone": "Europe/Berlin", "time_format": 24, "week_starts_on": 0}
        response = await async_client.put("/api/v1/hub/settings/preferences", json=body, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Preferences updated."

        body["timezone"] = "America/New_York"
        await async_client.put("/api/v1/hub/settings/preferences", json=body, headers=auth_headers)

        result = await db_session.execute(select(UserSetting).where(UserSetting.user_id == test_user.id))
        stored = {s.name: s.payload for s in result.scalars().all()}
        assert stored == {
            "locale": "de_DE",
            "timezone": "America/New_York",
            "time_format": 24,
            "week_starts_on": 0,
        }

    async def test_invalid_values(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.put(
            "/api/v1/hub/settings/preferences",
            json={"locale": "", "timezone": "Mars/Olympus", "time_format": 13, "week_starts_on": 3},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert set(response.json()["detail"]) == {"locale", "timezone", "time_format", "week_starts_on"}


class TestPassword:
    async def test_change_password(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User
    ):
        response = await async_client.put(
            "/api/v1/hub/settings/password",
            json={
                "current_password": TEST_PASSWORD,
                "password": "a-new-password",
                "password_confirmation": "a-new-password",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password updated successfully."
        await db_session.refresh(test_user)
        assert password_hasher.verify("a-new-password", test_user.password_hash)

    async def test_wrong_current_password(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.put(
            "/api/v1/hub/settings/password",
            json={"current_password": "nope", "password": "a-new-password", "password_confirmation": "a-new-password"},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["detail"] == {"current_password": "The password is incorrect."}

    async def test_confirmation_mismatch(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.put(
            "/api/v1/hub/settings/password",
            json={"current_password": TEST_PASSWORD, "password": "a-new-password", "password_confirmation": "other"},
            headers=auth_headers,
        )
        assert response.json()["detail"] == {"password": "The password confirmation does not match."}

    async def test_too_short(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.put(
            "/api/v1/hub/settings/password",
            json={"current_password": TEST_PASSWORD, "password": "short", "password_confirmation": "short"},
            headers=auth_headers,
        )
        assert response.json()["detail"] == {"password": "The password must be at least 8 characters."}


class TestTwoFactor:
    async def test_not_available_yet(self, async_client: AsyncClient, auth_headers: dict):
        data = (await async_client.post("/api/v1/hub/settings/two-factor", headers=auth_headers)).json()
        assert data["level"] == "warning"
        assert "being upgraded" in data["message"]


class TestAccountDeletion:
    async def test_request_and_cancel(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User
    ):
        with patch(
            "api.routes.settings.email_service.send_account_deletion_email", new_callable=AsyncMock
        ) as send:
            response = await async_client.post(
                "/api/v1/hub/settings/delete-account", json={"reason": "Moving on"}, headers=auth_headers
            )

        data = response.json()
        assert data["message"] == "Account deletion requested. You have 7 days to cancel."
        assert data["level"] == "warning"
        assert data["expires_at"]
        send.assert_awaited_once()

        panel = (await async_client.get("/api/v1/hub/settings", headers=auth_headers)).json()
        assert panel["pending_deletion"]["status"] == "pending"

        response = await async_client.post("/api/v1/hub/settings/delete-account/cancel", headers=auth_headers)
        assert response.json()["message"] == "Account deletion cancelled."
        assert await UserDataService(db_session).pending_deletion(test_user) is None

    async def test_second_request_warns(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User
    ):
        await UserDataService(db_session).schedule_deletion(test_user, "first")

        response = await async_client.post("/api/v1/hub/settings/delete-account", json={}, headers=auth_headers)

        assert response.json()["message"] == "An account deletion request is already pending."
        assert response.json()["level"] == "warning"


class TestProfilePage:
    async def test_profile_with_workspace(
        self, async_client: AsyncClient, auth_headers: dict, entitled_workspace: Workspace
    ):
        response = await async_client.get("/api/v1/hub/profile", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["initials"] == "TU"
        assert data["user"]["tier"] == "Free"

        quotas = {q["key"]: q for q in data["quotas"]}
        assert quotas["workspaces"]["used"] == 1
        assert quotas["workspaces"]["limit"] == 1
        assert quotas["workspaces"]["bar_color"] == "red"
        assert quotas["ai.credits"]["limit"] == 100

        services = {s["slug"]: s["status"] for s in data["services"]}
        assert services["analytics"] == "active"
        assert services["social"] == "inactive"

        assert data["recent_activity"][0]["message"] == "Package added: starter"
        assert "empty_state" not in data

    async def test_profile_without_workspace(self, async_client: AsyncClient, auth_headers: dict):
        data = (await async_client.get("/api/v1/hub/profile", headers=auth_headers)).json()

        assert data["workspace"] is None
        assert [q["key"] for q in data["quotas"]] == ["workspaces"]
        assert data["services"] == []
        assert data["empty_state"] == "No recent activity"

    async def test_hades_sees_every_service_active(
        self, async_client: AsyncClient, hades_headers: dict, hades_workspace: Workspace
    ):
        data = (await async_client.get("/api/v1/hub/profile", headers=hades_headers)).json()

        assert data["user"]["tier"] == "Hades"
        assert {s["status"] for s in data["services"]} == {"active"}
        assert next(q for q in data["quotas"] if q["key"] == "workspaces")["unlimited"] is True


class TestSiteSettings:
    async def test_services_tab(self, async_client: AsyncClient, auth_headers: dict, entitled_workspace: Workspace):
        response = await async_client.get("/api/v1/hub/sites/main/settings", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["tab"] == "services"
        assert data["tabs"][0] == {"key": "services", "label": "Services"}
        entitled = {card["slug"]: card["entitled"] for card in data["services"]}
        assert entitled["analytics"] is True
        assert entitled["bio"] is False

    async def test_general_tab(self, async_client: AsyncClient, auth_headers: dict, workspace: Workspace):
        data = (
            await async_client.get("/api/v1/hub/sites/main/settings", params={"tab": "general"}, headers=auth_headers)
        ).json()
        assert data["general"]["domain"] == "main.example.com"
        assert data["general"]["description"] == "No description"

    async def test_coming_soon_tab(self, async_client: AsyncClient, auth_headers: dict, workspace: Workspace):
        data = (
            await async_client.get("/api/v1/hub/sites/main/settings", params={"tab": "ssl"}, headers=auth_headers)
        ).json()
        assert data["coming_soon"].startswith("SSL & Security settings")

    async def test_foreign_workspace_not_found(
        self, async_client: AsyncClient, hades_headers: dict, workspace: Workspace
    ):
        response = await async_client.get("/api/v1/hub/sites/main/settings", headers=hades_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "No workspace found."

    async def test_add_service(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, workspace: Workspace
    ):
        response = await async_client.post(
            "/api/v1/hub/sites/main/settings/services",
            json={"feature_code": "core.srv.bio"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Bio Access has been added to your site."
        assert (await EntitlementService(db_session).can(workspace, "core.srv.bio")).allowed

    async def test_add_unknown_service(self, async_client: AsyncClient, auth_headers: dict, workspace: Workspace):
        response = await async_client.post(
            "/api/v1/hub/sites/main/settings/services",
            json={"feature_code": "core.srv.nope"},
            headers=auth_headers,
        )
        assert response.status_code == 404
