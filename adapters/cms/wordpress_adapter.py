"""
WordPress REST API client used by the WP connector.

The connector only needs to confirm the remote site exposes the REST API
before it is marked verified.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class WordPressConnectionError(Exception):
    """Raised when connection to WordPress site fails."""
    pass


class WordPressAPIError(Exception):
    """Raised when WordPress API returns an error."""
    pass


class WordPressAdapter:
    """
    Minimal WordPress REST API client.

    Args:
        site_url: WordPress site URL (e.g., "https://example.com")
        timeout: Request timeout in seconds (default: 10)
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(
        self,
        site_url: str,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.site_url = site_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        url = f"{self.site_url}/wp-json/{path.lstrip('/')}"
        try:
            response = await self._get_client().get(url, params=params)
        except httpx.ConnectError as e:
            logger.error("Failed to connect to WordPress site %s: %s", self.site_url, e)
            raise WordPressConnectionError(
                f"Cannot connect to {self.site_url}. Check the site URL and network connection."
            )
        except httpx.TimeoutException as e:
            logger.error("WordPress connection timeout for %s: %s", self.site_url, e)
            raise WordPressConnectionError(
                f"Connection timeout. Site did not respond within {self.timeout} seconds."
            )
        except httpx.HTTPError as e:
            logger.error("WordPress request to %s failed: %s", url, e)
            raise WordPressConnectionError(f"Connection test failed: {e}")

        if response.status_code >= 400:
            raise WordPressAPIError(f"HTTP {response.status_code}")
        return response

    async def discover(self) -> Dict[str, Any]:
        """
        Fetch the REST API index (``/wp-json/``).

        Raises:
            WordPressConnectionError: If the site cannot be reached
            WordPressAPIError: If the site answers with an error status
        """
        response = await self._get("")
        try:
            return response.json()
        except ValueError:
            raise WordPressAPIError("Site did not return a WordPress REST API index.")
