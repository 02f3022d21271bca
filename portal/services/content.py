"""
Gold Bottom Ent. Portal — Content server client.

Fetches each route's markup fragment relative to the site root.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin

import aiohttp

from portal.errors import ContentFetchError

logger = logging.getLogger(__name__)


class ContentServer:
    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self, location: str, headers: Optional[dict] = None) -> str:
        """GET ``location`` and return the body text; anything but 2xx raises."""
        url = urljoin(self.base_url, location)
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(url, headers=headers or {}) as resp:
                    body = await resp.text()
                    if not 200 <= resp.status < 300:
                        raise ContentFetchError(location, f"HTTP {resp.status}", status=resp.status)
                    return body
        except asyncio.TimeoutError as e:
            raise ContentFetchError(location, "timed out") from e
        except aiohttp.ClientError as e:
            raise ContentFetchError(location, str(e) or type(e).__name__) from e
