"""
Gold Bottom Ent. Portal — Local secret verification client.

Talks to the owner's home server, reachable only on the private network:

    POST   {base}/login    {"secret": ...}  → {"token": ...}
    POST   {base}/verify   {"token": ...}   → {"valid": bool, "identity": {...}}
    DELETE {base}/session  {"token": ...}
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from portal.errors import LocalAuthError

logger = logging.getLogger(__name__)


class LocalSessionClient:
    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(self, method: str, path: str, payload: dict) -> tuple[int, dict]:
        url = f"{self.base_url}/{path}"
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.request(method, url, json=payload) as resp:
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError:
                        data = None
                    return resp.status, data if isinstance(data, dict) else {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LocalAuthError(f"Local auth service unreachable: {e}", unreachable=True) from e

    async def exchange(self, secret: str) -> str:
        """Trade the owner's secret for a bearer token."""
        status, data = await self._request("POST", "login", {"secret": secret})
        if status in (401, 403):
            raise LocalAuthError(data.get("error") or "Incorrect PIN")
        if status != 200 or not data.get("token"):
            raise LocalAuthError(f"Local auth service returned HTTP {status}", unreachable=status >= 500)
        return data["token"]

    async def verify(self, token: str) -> tuple[bool, Optional[dict]]:
        """Returns ``(valid, identity)``. Raises ``LocalAuthError`` only when unreachable."""
        status, data = await self._request("POST", "verify", {"token": token})
        if status >= 500:
            raise LocalAuthError(f"Local auth service returned HTTP {status}", unreachable=True)
        if status != 200:
            return False, None
        return bool(data.get("valid")), data.get("identity")

    async def invalidate(self, token: str) -> None:
        status, _ = await self._request("DELETE", "session", {"token": token})
        if status >= 400 and status != 404:
            logger.warning(f"Local session invalidate returned HTTP {status}")
