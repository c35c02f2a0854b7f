"""
WordPress connector service.

A workspace can accept content webhooks from a WordPress plugin. The
plugin signs each request body with a shared secret (HMAC-SHA256), which
is stored Fernet-encrypted on the workspace.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

import httpx
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.cms import WordPressAdapter, WordPressAPIError, WordPressConnectionError
from core.security.encryption import get_credential_encryption
from infrastructure.config.settings import settings
from infrastructure.database.models import ContentItem, ContentKind, Workspace, utcnow

logger = logging.getLogger(__name__)


def generate_secret() -> str:
    """64 hex characters (32 random bytes)."""
    return secrets.token_hex(32)


class WPConnectorService:
    def __init__(
        self,
        db: AsyncSession,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self._transport = transport
        self._encryption = get_credential_encryption()

    # ------------------------------------------------------------------
    # Secret handling
    # ------------------------------------------------------------------

    def get_secret(self, workspace: Workspace) -> Optional[str]:
        if not workspace.wp_connector_secret:
            return None
        try:
            return self._encryption.decrypt(workspace.wp_connector_secret)
        except ValueError:
            logger.error("Stored connector secret for workspace %s cannot be decrypted", workspace.id)
            return None

    def _store_secret(self, workspace: Workspace, secret: str) -> None:
        workspace.wp_connector_secret = self._encryption.encrypt(secret)

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    async def enable(self, workspace: Workspace, url: str) -> Workspace:
        """Enable the connector; an existing secret is kept."""
        workspace.wp_connector_enabled = True
        workspace.wp_connector_url = url.strip().rstrip("/")
        if not self.get_secret(workspace):
            self._store_secret(workspace, generate_secret())
        await self.db.commit()
        logger.info("WP connector enabled for workspace %s", workspace.id)
        return workspace

    async def disable(self, workspace: Workspace) -> Workspace:
        workspace.wp_connector_enabled = False
        workspace.wp_connector_verified_at = None
        await self.db.commit()
        logger.info("WP connector disabled for workspace %s", workspace.id)
        return workspace

    async def regenerate_secret(self, workspace: Workspace) -> str:
        """Issue a new secret. The connector must be re-verified afterwards."""
        secret = generate_secret()
        self._store_secret(workspace, secret)
        workspace.wp_connector_verified_at = None
        await self.db.commit()
        logger.info("WP connector secret regenerated for workspace %s", workspace.id)
        return secret

    async def mark_verified(self, workspace: Workspace) -> None:
        workspace.wp_connector_verified_at = utcnow()
        await self.db.commit()

    async def touch_sync(self, workspace: Workspace) -> None:
        workspace.wp_connector_last_sync = utcnow()
        await self.db.commit()

    def has_active_connector(self, workspace: Workspace) -> bool:
        return bool(
            workspace.wp_connector_enabled
            and workspace.wp_connector_url
            and workspace.wp_connector_secret
        )

    @staticmethod
    def webhook_url(workspace: Workspace) -> str:
        return f"{settings.api_base_url.rstrip('/')}/api/v1/webhooks/content?workspace={workspace.slug}"

    def validate_signature(self, workspace: Workspace, payload: bytes, signature: Optional[str]) -> bool:
        """Constant-time check of an HMAC-SHA256 hex signature over the raw body."""
        secret = self.get_secret(workspace)
        if not secret or not signature:
            return False
        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected.encode(), signature.strip().lower().encode())

    # ------------------------------------------------------------------
    # Remote checks
    # ------------------------------------------------------------------

    async def test_connection(self, workspace: Workspace) -> dict:
        if not workspace.wp_connector_url:
            return {"success": False, "message": "Please enter your WordPress site URL first."}

        async with WordPressAdapter(workspace.wp_connector_url, transport=self._transport) as wp:
            try:
                index = await wp.discover()
            except WordPressConnectionError as e:
                return {"success": False, "message": str(e)}
            except WordPressAPIError as e:
                return {"success": False, "message": f"WordPress REST API not reachable: {e}"}

        await self.mark_verified(workspace)
        site_name = index.get("name") if isinstance(index, dict) else None
        message = "Connection successful."
        if site_name:
            message = f"Connection successful. Connected to {site_name}."
        return {"success": True, "message": message}

    async def internal_health(self, workspace: Optional[Workspace] = None) -> dict:
        """
        Health of the hub's own content store.

        Content is native to the hub, so the API is always available; counts
        are scoped to the workspace when one is given.
        """
        query = select(ContentItem.type, func.count(ContentItem.id)).group_by(ContentItem.type)
        if workspace is not None:
            query = query.where(ContentItem.workspace_id == workspace.id)
        counts = dict((await self.db.execute(query)).all())

        return {
            "status": "healthy",
            "url": settings.api_base_url,
            "api_available": True,
            "post_count": counts.get(ContentKind.POST.value, 0),
            "page_count": counts.get(ContentKind.PAGE.value, 0),
            "last_check": utcnow().isoformat(),
        }
