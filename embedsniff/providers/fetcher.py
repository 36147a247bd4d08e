"""
HTTP fetcher for preflight probes. Wraps aiohttp with common defaults,
headers and timeout; lets the scraper skip dead mirrors before paying
for a browser context.
"""
from __future__ import annotations
import aiohttp
from typing import Optional

from ..core.config import DEFAULT_UA


class Fetcher:
    def __init__(self, *, timeout: float = 5, user_agent: str = DEFAULT_UA, proxy: str | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 4))
        self.user_agent = user_agent
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                connector=aiohttp.TCPConnector(ssl=False),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def head(self, url: str, *, headers: dict | None = None) -> int:
        """Returns status code."""
        session = await self._get_session()
        async with session.head(
            url,
            headers=headers or {},
            allow_redirects=True,
            proxy=self.proxy,
        ) as resp:
            return resp.status
