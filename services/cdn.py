"""
BunnyCDN cache purging.
"""

import logging
from typing import Optional

import httpx

from infrastructure.config.settings import settings
from infrastructure.database.models import Workspace

logger = logging.getLogger(__name__)


class CDNService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        pull_zone_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.bunny_api_key
        self.pull_zone_id = pull_zone_id if pull_zone_id is not None else settings.bunny_pull_zone_id
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.pull_zone_id)

    @staticmethod
    def cache_tag(workspace: Workspace) -> str:
        return f"workspace-{workspace.id}"

    async def purge_tag(self, tag: str) -> bool:
        if not self.is_configured:
            logger.warning("BunnyCDN purge skipped: API key or pull zone not configured")
            return False

        url = f"{settings.bunny_api_base.rstrip('/')}/pullzone/{self.pull_zone_id}/purgeCache"
        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                response = await client.post(
                    url,
                    headers={"AccessKey": self.api_key, "Content-Type": "application/json"},
                    json={"CacheTag": tag},
                )
        except httpx.HTTPError as e:
            logger.error("BunnyCDN purge for tag %s failed: %s", tag, e)
            return False

        if response.status_code >= 400:
            logger.error(
                "BunnyCDN purge for tag %s returned %s: %s", tag, response.status_code, response.text
            )
            return False

        logger.info("BunnyCDN cache purged for tag %s", tag)
        return True

    async def purge_workspace(self, workspace: Workspace) -> bool:
        return await self.purge_tag(self.cache_tag(workspace))
