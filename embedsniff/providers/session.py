"""
Browser session manager.

One Chromium process per service process, launched in the app lifespan and
closed on shutdown. Every provider run gets its own BrowserContext (separate
cookies, storage and cache), which is closed when the run ends.

Usage:
    manager = BrowserManager(settings)
    await manager.startup()
    async with manager.session() as page:
        await page.goto(url)
    await manager.shutdown()
"""
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from ..core.config import Settings
from .errors import BrowserUnavailableError

log = logging.getLogger("embedsniff.providers.session")

VIEWPORT = {"width": 1280, "height": 720}
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserManager:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def startup(self) -> Browser:
        if self._browser is not None:
            raise RuntimeError("BrowserManager already started")
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.headless, args=LAUNCH_ARGS)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        log.info("Chromium %s launched (headless=%s)", self._browser.version, self.settings.headless)
        return self._browser

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        browser = self._browser
        if browser is None or not browser.is_connected():
            raise BrowserUnavailableError()
        context = await browser.new_context(user_agent=self.settings.user_agent, viewport=VIEWPORT)
        try:
            page = await context.new_page()
            yield page
        finally:
            try:
                await context.close()
            except Exception as e:
                # Browser may already be gone (shutdown raced this run)
                log.debug("context close failed: %s", e)

    async def shutdown(self):
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                log.warning("browser close failed: %s", e)
        if playwright is not None:
            await playwright.stop()
        log.info("Browser shut down")
