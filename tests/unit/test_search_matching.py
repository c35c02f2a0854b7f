"""Unit tests for the search palette's matching and ranking."""

import pytest

from infrastructure.database.models import User
from services.search_registry import (
    HubPagesProvider,
    SearchProviderRegistry,
    fuzzy_match,
    relevance_score,
)


class TestFuzzyMatch:
    def test_substring(self):
        assert fuzzy_match("board", "Dashboard")

    def test_word_starts(self):
        assert fuzzy_match("gs", "Global Search")

    def test_in_order_abbreviation(self):
        assert fuzzy_match("dbd", "dashboard")

    def test_out_of_order_fails(self):
        assert not fuzzy_match("bd", "db")

    def test_empty_query(self):
        assert not fuzzy_match("   ", "Dashboard")


class TestRelevanceScore:
    @pytest.mark.parametrize(
        "query,target,score",
        [
            ("dashboard", "Dashboard", 100),
            ("dash", "Dashboard", 90),
            ("limits", "Usage & Limits", 80),
            ("board", "Dashboard", 70),
            ("gs", "Global Search", 60),
            ("dbd", "Dashboard", 40),
            ("xyz", "Dashboard", 0),
            ("", "Dashboard", 0),
        ],
    )
    def test_ranking(self, query, target, score):
        assert relevance_score(query, target) == score


class TestHubPagesProvider:
    PAGES = [
        {"id": "usage", "title": "Usage & Limits", "subtitle": "Workspace usage", "url": "/hub/usage", "icon": "chart-bar"},
        {"id": "platform", "title": "Platform Admin", "subtitle": "Users", "url": "/admin/platform", "icon": "crown", "hades": True},
    ]

    async def test_matches_titles(self):
        results = await HubPagesProvider(self.PAGES).search("usage", 5)
        assert [r["id"] for r in results] == ["usage"]

    async def test_limit(self):
        results = await HubPagesProvider(self.PAGES).search("a", 1)
        assert len(results) <= 1


class TestRegistry:
    async def test_hades_pages_only_for_hades(self):
        registry = SearchProviderRegistry()
        registry.register(HubPagesProvider(TestHubPagesProvider.PAGES))

        member = User(id="u1", email="m@example.com", name="M", password_hash="x", tier="free")
        hades = User(id="u2", email="h@example.com", name="H", password_hash="x", tier="hades")

        assert await registry.search("platform", member, None) == {}
        grouped = await registry.search("platform", hades, None)
        assert [r["id"] for r in grouped["pages"]["results"]] == ["platform"]
        assert grouped["pages"]["results"][0]["type"] == "pages"

    async def test_no_user_no_providers(self):
        registry = SearchProviderRegistry()
        registry.register(HubPagesProvider(TestHubPagesProvider.PAGES))
        assert registry.available_providers(None, None) == []

    def test_flatten(self):
        grouped = {"a": {"results": [{"id": 1}]}, "b": {"results": [{"id": 2}, {"id": 3}]}}
        assert [r["id"] for r in SearchProviderRegistry.flatten_results(grouped)] == [1, 2, 3]

    async def test_provider_keeps_no_per_request_state(self):
        provider = HubPagesProvider(TestHubPagesProvider.PAGES)
        member = User(id="u1", email="m@example.com", name="M", password_hash="x", tier="free")
        hades = User(id="u2", email="h@example.com", name="H", password_hash="x", tier="hades")

        assert provider.is_available(hades, None)
        assert await provider.search("platform", 5, user=member) == []
        assert [r["id"] for r in await provider.search("platform", 5, user=hades)] == ["platform"]
