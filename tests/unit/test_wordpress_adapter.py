"""
Tests for the WordPress REST API adapter and the WP connector service.
"""

import hashlib
import hmac
from unittest.mock import AsyncMock

import httpx
import pytest

from adapters.cms.wordpress_adapter import (
    WordPressAdapter,
    WordPressAPIError,
    WordPressConnectionError,
)
from infrastructure.database.models import Workspace
from services.wp_connector import WPConnectorService, generate_secret


def transport_for(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


class TestWordPressAdapter:
    """Tests for WordPressAdapter."""

    def test_site_url_trailing_slash_stripped(self):
        adapter = WordPressAdapter("https://example.com/")
        assert adapter.site_url == "https://example.com"
        assert adapter.timeout == 10

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        async with WordPressAdapter("https://example.com") as adapter:
            adapter._get_client()
            assert adapter._client is not None

        assert adapter._client is None

    @pytest.mark.asyncio
    async def test_discover(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"name": "My Blog", "namespaces": ["wp/v2"]})

        async with WordPressAdapter("https://example.com", transport=transport_for(handler)) as wp:
            index = await wp.discover()

        assert index["name"] == "My Blog"
        assert seen == ["https://example.com/wp-json/"]

    @pytest.mark.asyncio
    async def test_discover_error_status(self):
        adapter = WordPressAdapter(
            "https://example.com", transport=transport_for(lambda request: httpx.Response(404))
        )

        with pytest.raises(WordPressAPIError, match="HTTP 404"):
            await adapter.discover()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_discover_non_json(self):
        adapter = WordPressAdapter(
            "https://example.com",
            transport=transport_for(lambda request: httpx.Response(200, text="<html></html>")),
        )

        with pytest.raises(WordPressAPIError, match="REST API index"):
            await adapter.discover()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = WordPressAdapter("https://example.com", transport=transport_for(handler))

        with pytest.raises(WordPressConnectionError, match="Cannot connect to https://example.com"):
            await adapter.discover()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        adapter = WordPressAdapter("https://example.com", timeout=3, transport=transport_for(handler))

        with pytest.raises(WordPressConnectionError, match="within 3 seconds"):
            await adapter.discover()
        await adapter.close()


class TestWPConnectorService:
    """Tests for connector secrets, signatures and the connection test."""

    @pytest.fixture
    def db(self):
        session = AsyncMock()
        session.add = lambda obj: None
        return session

    @pytest.fixture
    def workspace(self) -> Workspace:
        return Workspace(id="ws-1", name="Main Site", slug="main", wp_connector_enabled=False)

    def test_generate_secret(self):
        secret = generate_secret()
        assert len(secret) == 64
        int(secret, 16)

    @pytest.mark.asyncio
    async def test_enable_stores_encrypted_secret(self, db, workspace):
        service = WPConnectorService(db)

        await service.enable(workspace, " https://blog.example.com/ ")

        assert workspace.wp_connector_url == "https://blog.example.com"
        secret = service.get_secret(workspace)
        assert len(secret) == 64
        assert workspace.wp_connector_secret != secret
        assert service.has_active_connector(workspace)

    @pytest.mark.asyncio
    async def test_enable_keeps_existing_secret(self, db, workspace):
        service = WPConnectorService(db)
        await service.enable(workspace, "https://blog.example.com")
        first = service.get_secret(workspace)

        await service.disable(workspace)
        await service.enable(workspace, "https://blog.example.com")

        assert service.get_secret(workspace) == first

    @pytest.mark.asyncio
    async def test_regenerate_clears_verification(self, db, workspace):
        service = WPConnectorService(db)
        await service.enable(workspace, "https://blog.example.com")
        await service.mark_verified(workspace)
        old = service.get_secret(workspace)

        new = await service.regenerate_secret(workspace)

        assert new != old
        assert workspace.wp_connector_verified_at is None

    def test_undecryptable_secret(self, db, workspace):
        workspace.wp_connector_secret = "not-a-fernet-token"
        assert WPConnectorService(db).get_secret(workspace) is None

    @pytest.mark.asyncio
    async def test_validate_signature(self, db, workspace):
        service = WPConnectorService(db)
        await service.enable(workspace, "https://blog.example.com")
        body = b'{"event":"post.updated"}'
        signature = hmac.new(service.get_secret(workspace).encode(), body, hashlib.sha256).hexdigest()

        assert service.validate_signature(workspace, body, signature)
        assert service.validate_signature(workspace, body, signature.upper())
        assert not service.validate_signature(workspace, body + b" ", signature)
        assert not service.validate_signature(workspace, body, None)
        assert not service.validate_signature(workspace, body, "\u00e9" * 64)

    def test_webhook_url(self, workspace):
        assert WPConnectorService.webhook_url(workspace).endswith("/api/v1/webhooks/content?workspace=main")

    @pytest.mark.asyncio
    async def test_connection_requires_url(self, db, workspace):
        result = await WPConnectorService(db).test_connection(workspace)
        assert result == {"success": False, "message": "Please enter your WordPress site URL first."}

    @pytest.mark.asyncio
    async def test_connection_success_marks_verified(self, db, workspace):
        workspace.wp_connector_url = "https://blog.example.com"
        transport = transport_for(lambda request: httpx.Response(200, json={"name": "My Blog"}))

        result = await WPConnectorService(db, transport=transport).test_connection(workspace)

        assert result["message"] == "Connection successful. Connected to My Blog."
        assert workspace.wp_connector_verified_at is not None

    @pytest.mark.asyncio
    async def test_connection_api_error(self, db, workspace):
        workspace.wp_connector_url = "https://blog.example.com"
        transport = transport_for(lambda request: httpx.Response(500))

        result = await WPConnectorService(db, transport=transport).test_connection(workspace)

        assert result["success"] is False
        assert result["message"] == "WordPress REST API not reachable: HTTP 500"
        assert workspace.wp_connector_verified_at is None
