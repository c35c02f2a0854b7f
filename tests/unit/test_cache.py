"""Unit tests for the hub cache's in-process fallback and recent searches."""

from unittest.mock import patch

from infrastructure.database.models import User
from services.cache import HubCache
from services.search_registry import RECENT_SEARCH_LIMIT, RecentSearches


def make_cache() -> HubCache:
    # Never connected, so every call uses the local store
    return HubCache(url="redis://localhost:1/0")


class TestLocalFallback:
    async def test_get_default_on_miss(self):
        cache = make_cache()
        assert await cache.get("missing") is None
        assert await cache.get("missing", []) == []

    async def test_set_and_get_json_values(self):
        cache = make_cache()
        await cache.set("stats", {"count": 3, "ips": ["1.2.3.4"]}, ttl=60)
        assert await cache.get("stats") == {"count": 3, "ips": ["1.2.3.4"]}

    async def test_ttl_expiry(self):
        cache = make_cache()
        with patch("services.cache.time.monotonic", return_value=1000.0):
            await cache.set("short", 1, ttl=10)
        with patch("services.cache.time.monotonic", return_value=1011.0):
            assert await cache.get("short") is None

    async def test_set_drops_expired_entries(self):
        cache = make_cache()
        with patch("services.cache.time.monotonic", return_value=1000.0):
            await cache.set("stale", 1, ttl=10)
            await cache.set("kept", 2)
        with patch("services.cache.time.monotonic", return_value=1011.0):
            await cache.set("fresh", 3, ttl=10)

        assert set(cache._local) == {"hub:kept", "hub:fresh"}

    async def test_delete_prefix(self):
        cache = make_cache()
        await cache.set("entitlement:ws1:limit:a", 1)
        await cache.set("entitlement:ws1:usage:a", 2)
        await cache.set("entitlement:ws2:limit:a", 3)

        assert await cache.delete_prefix("entitlement:ws1:") == 2
        assert await cache.get("entitlement:ws2:limit:a") == 3

    async def test_remember_caches_none(self):
        cache = make_cache()
        calls = []

        async def factory():
            calls.append(1)
            return None

        assert await cache.remember("limit", 60, factory) is None
        assert await cache.remember("limit", 60, factory) is None
        assert len(calls) == 1

    async def test_flush(self):
        cache = make_cache()
        await cache.set("a", 1)
        await cache.set("b", 2)
        assert await cache.flush() == 2
        assert await cache.get("a") is None


class TestRecentSearches:
    def user(self) -> User:
        return User(id="user-1", email="r@example.com", name="R", password_hash="x")

    async def test_newest_first_and_deduplicated(self):
        recent = RecentSearches(make_cache())
        user = self.user()
        await recent.add(user, {"title": "Usage", "url": "/hub/usage"})
        await recent.add(user, {"title": "Profile", "url": "/hub/profile"})
        entries = await recent.add(user, {"title": "Usage", "url": "/hub/usage"})

        assert [e["url"] for e in entries] == ["/hub/usage", "/hub/profile"]
        assert entries[0]["icon"] == "magnifying-glass"

    async def test_capped(self):
        recent = RecentSearches(make_cache())
        user = self.user()
        for i in range(RECENT_SEARCH_LIMIT + 2):
            entries = await recent.add(user, {"title": f"Page {i}", "url": f"/p/{i}"})
        assert len(entries) == RECENT_SEARCH_LIMIT
        assert entries[0]["url"] == f"/p/{RECENT_SEARCH_LIMIT + 1}"

    async def test_remove_ignores_bad_index(self):
        recent = RecentSearches(make_cache())
        user = self.user()
        await recent.add(user, {"title": "Usage", "url": "/hub/usage"})
        assert len(await recent.remove(user, 5)) == 1
        assert await recent.remove(user, 0) == []

    async def test_clear(self):
        recent = RecentSearches(make_cache())
        user = self.user()
        await recent.add(user, {"title": "Usage", "url": "/hub/usage"})
        await recent.clear(user)
        assert await recent.entries(user) == []
