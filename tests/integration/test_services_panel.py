"""Integration tests for the services panel and its analytics dashboard."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import (
    AnalyticsEvent,
    AnalyticsSession,
    AnalyticsWebsite,
    Workspace,
    utcnow,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def website(db_session: AsyncSession, entitled_workspace: Workspace) -> AnalyticsWebsite:
    site = AnalyticsWebsite(
        workspace_id=entitled_workspace.id,
        name="Main Site",
        host="main.example.com",
        pixel_key="pixel-original",
    )
    db_session.add(site)
    await db_session.flush()

    now = utcnow()
    bounced = AnalyticsSession(
        website_id=site.id,
        visitor_id="v1",
        started_at=now - timedelta(minutes=5),
        ended_at=now - timedelta(minutes=5),
        pageviews=1,
        is_bounce=True,
        landing_page="/",
    )
    engaged = AnalyticsSession(
        website_id=site.id,
        visitor_id="v2",
        started_at=now - timedelta(minutes=10),
        ended_at=now - timedelta(minutes=8),
        pageviews=2,
        is_bounce=False,
        landing_page="/pricing",
    )
    db_session.add_all([bounced, engaged])
    await db_session.flush()
    db_session.add_all(
        [
            AnalyticsEvent(website_id=site.id, session_id=bounced.id, visitor_id="v1", path="/", created_at=now),
            AnalyticsEvent(website_id=site.id, session_id=engaged.id, visitor_id="v2", path="/pricing", created_at=now),
            AnalyticsEvent(website_id=site.id, session_id=engaged.id, visitor_id="v2", path="/", created_at=now),
        ]
    )
    await db_session.commit()
    return site


class TestServicesPanel:
    async def test_no_workspace(self, async_client: AsyncClient, auth_headers: dict):
        data = (await async_client.get("/api/v1/hub/services", headers=auth_headers)).json()
        assert data == {"services": [], "workspace": None, "service": None, "tab": None, "tabs": []}

    async def test_only_entitled_services(
        self, async_client: AsyncClient, auth_headers: dict, entitled_workspace: Workspace
    ):
        data = (await async_client.get("/api/v1/hub/services", headers=auth_headers)).json()

        assert [s["slug"] for s in data["services"]] == ["analytics"]
        assert data["service"] == "analytics"
        assert data["tab"] == "dashboard"
        assert data["tabs"] == ["dashboard", "websites", "settings"]
        assert data["range"] == "30d"

    async def test_hades_sees_every_service(
        self, async_client: AsyncClient, hades_headers: dict, hades_workspace: Workspace
    ):
        data = (
            await async_client.get("/api/v1/hub/services", params={"service": "social"}, headers=hades_headers)
        ).json()

        assert len(data["services"]) == 6
        assert data["service"] == "social"
        assert "analytics" not in data

    async def test_switching_service_resets_tab(
        self, async_client: AsyncClient, hades_headers: dict, hades_workspace: Workspace
    ):
        data = (
            await async_client.get(
                "/api/v1/hub/services",
                params={"service": "notify", "tab": "campaigns", "previous": "bio"},
                headers=hades_headers,
            )
        ).json()
        assert data["tab"] == "dashboard"

        same = (
            await async_client.get(
                "/api/v1/hub/services",
                params={"service": "notify", "tab": "campaigns", "previous": "notify"},
                headers=hades_headers,
            )
        ).json()
        assert same["tab"] == "campaigns"

    async def test_invalid_range_falls_back(
        self, async_client: AsyncClient, auth_headers: dict, entitled_workspace: Workspace
    ):
        data = (
            await async_client.get("/api/v1/hub/services", params={"range": "1y"}, headers=auth_headers)
        ).json()
        assert data["range"] == "30d"


class TestAnalyticsDashboard:
    async def test_dashboard_tab(self, async_client: AsyncClient, auth_headers: dict, website: AnalyticsWebsite):
        data = (await async_client.get("/api/v1/hub/services", headers=auth_headers)).json()
        analytics = data["analytics"]

        cards = {card["label"]: card["value"] for card in analytics["stat_cards"]}
        assert cards["Total websites"] == "1"
        assert cards["Pageviews today"] == "3"

        assert len(analytics["chart"]) == 30
        assert analytics["chart"][-1]["pageviews"] == 3

        top = {page["path"]: page for page in analytics["top_pages"]}
        assert top["/"]["views"] == 2
        assert top["/"]["visitors"] == 2
        assert top["/"]["bounce_rate"] == 100.0
        assert top["/pricing"]["bounce_rate"] == 0.0

        summary = analytics["summary"]
        assert summary["total_pageviews"] == 3
        assert summary["unique_visitors"] == 2
        assert summary["bounce_rate"] == 50.0
        assert summary["avg_session_duration"] == 60
        assert summary["avg_session_duration_formatted"] == "1m"

    async def test_websites_tab(self, async_client: AsyncClient, auth_headers: dict, website: AnalyticsWebsite):
        data = (
            await async_client.get(
                "/api/v1/hub/services", params={"tab": "websites", "range": "7d"}, headers=auth_headers
            )
        ).json()

        row = data["analytics"]["websites"][0]
        assert row["pageviews_count"] == 3
        assert row["sessions_count"] == 2
        assert row["visitors_count"] == 2
        assert row["bounce_rate"] == 50.0
        assert row["avg_duration"] == 60
        assert "stat_cards" not in data["analytics"]

    async def test_settings_tab(self, async_client: AsyncClient, auth_headers: dict, website: AnalyticsWebsite):
        data = (
            await async_client.get("/api/v1/hub/services", params={"tab": "settings"}, headers=auth_headers)
        ).json()
        assert data["analytics"]["settings"]["pixel_key"] == "pixel-original"

    async def test_save_settings(self, async_client: AsyncClient, auth_headers: dict, website: AnalyticsWebsite):
        response = await async_client.put(
            "/api/v1/hub/services/analytics/settings",
            json={"name": "Renamed", "host": "renamed.example.com", "tracking_type": "full"},
            headers=auth_headers,
        )

        data = response.json()
        assert data["message"] == "Settings saved successfully"
        assert data["settings"]["name"] == "Renamed"
        assert data["settings"]["tracking_type"] == "full"

    async def test_save_settings_without_website(
        self, async_client: AsyncClient, auth_headers: dict, entitled_workspace: Workspace
    ):
        response = await async_client.put(
            "/api/v1/hub/services/analytics/settings", json={"name": "x"}, headers=auth_headers
        )
        assert response.json()["success"] is False
        assert response.json()["message"] == "No website to configure."

    async def test_settings_require_analytics_service(
        self, async_client: AsyncClient, auth_headers: dict, workspace: Workspace
    ):
        response = await async_client.put(
            "/api/v1/hub/services/analytics/settings", json={"name": "x"}, headers=auth_headers
        )
        assert response.status_code == 404

    async def test_regenerate_pixel_key(self, async_client: AsyncClient, auth_headers: dict, website: AnalyticsWebsite):
        response = await async_client.post("/api/v1/hub/services/analytics/pixel-key", headers=auth_headers)

        data = response.json()
        assert data["message"] == "Pixel key regenerated. Update your website tracking code."
        assert data["pixel_key"] != "pixel-original"
