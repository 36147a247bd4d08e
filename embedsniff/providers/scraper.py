"""
Provider scraper: drives one isolated browser context against one provider
page and reports whatever manifest/subtitle URLs the page requested.

Flow:
  1. (optional) HEAD preflight → skip dead mirrors without a browser context
  2. new context + page, traffic observation installed before navigation
  3. goto(target) → wait for the trigger element → click it
  4. settle, then wait (bounded) for a manifest if none seen yet
  5. context closed on every path
"""
from __future__ import annotations
import asyncio
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Optional

import aiohttp
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..core.config import Settings
from .base import Provider, ProviderResult
from .classifier import TrafficCapture
from .errors import (
    BrowserUnavailableError, ManifestNotFoundError, NavigationError,
    ScraperError, UnexpectedScraperError,
)
from .fetcher import Fetcher

log = logging.getLogger("embedsniff.providers.scraper")


@dataclass(frozen=True)
class ScrapeTimings:
    """All values in seconds."""
    navigation_timeout: float = 20.0
    trigger_timeout: float = 8.0
    settle_delay: float = 5.0
    manifest_timeout: float = 10.0
    subtitle_grace: float = 3.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScrapeTimings":
        return cls(
            navigation_timeout=settings.navigation_timeout,
            trigger_timeout=settings.trigger_timeout,
            settle_delay=settings.settle_delay,
            manifest_timeout=settings.manifest_timeout,
            subtitle_grace=settings.subtitle_grace,
        )


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def screenshot_name(provider_name: str, now_ms: Optional[int] = None) -> str:
    slug = re.sub(r"^https?://", "", provider_name)
    slug = re.sub(r"[^A-Za-z0-9]+", "_", slug).strip("_")
    return f"{slug}_{now_ms if now_ms is not None else int(time.time() * 1000)}.png"


class ProviderScraper:
    def __init__(self, sessions, timings: ScrapeTimings = ScrapeTimings(), *,
                 fetcher: Optional[Fetcher] = None, screenshot_dir: Optional[str] = None):
        self.sessions = sessions
        self.timings = timings
        self.fetcher = fetcher
        self.screenshot_dir = screenshot_dir

    async def scrape(self, provider: Provider, target_url: str, deadline: float) -> ProviderResult:
        label = provider.name
        log.info(f"[{label}] Starting scrape for URL: {target_url}")
        try:
            result = await asyncio.wait_for(self._run(provider, target_url), timeout=deadline)
        except asyncio.TimeoutError:
            log.warning(f"[{label}] Deadline of {deadline}s exceeded, session closed")
            return ProviderResult.failed("deadline exceeded")
        except (ScraperError, BrowserUnavailableError) as e:
            log.warning(f"[{label}] Error: {e}")
            return ProviderResult.failed(str(e))
        except Exception as e:
            log.exception(f"[{label}] Unexpected failure")
            return ProviderResult.failed(str(UnexpectedScraperError(_first_line(e))))

        if result.error:
            log.warning(f"[{label}] Error: {result.error}")
        else:
            log.info(f"[{label}] Done: manifest + {len(result.subtitle_urls)} subtitle(s)")
        return result

    async def _run(self, provider: Provider, target_url: str) -> ProviderResult:
        label = provider.name
        if self.fetcher is not None:
            await self._preflight(target_url, label)

        capture = TrafficCapture(label)
        async with self.sessions.session() as page:
            await self._observe(page, capture)
            await self._navigate(page, target_url, label)
            await provider.trigger.activate(page, self.timings.trigger_timeout, label)
            await self._settle(page, capture)
            screenshot = await self._screenshot(page, label)

        if capture.manifest_url is None:
            return ProviderResult.failed(str(ManifestNotFoundError()), screenshot=screenshot)
        return ProviderResult.found(capture.manifest_url, capture.subtitle_urls, screenshot)

    async def _preflight(self, target_url: str, label: str):
        try:
            status = await self.fetcher.head(target_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NavigationError(f"provider unreachable: {_first_line(e)}") from e
        if status >= 400:
            raise NavigationError(f"provider unreachable: HTTP {status}")
        log.debug(f"[{label}] Preflight HTTP {status}")

    async def _observe(self, page: Page, capture: TrafficCapture):
        async def on_route(route):
            capture.observe(route.request.url)
            try:
                await route.continue_()
            except PlaywrightError as e:
                # Context torn down while the request was paused
                log.debug(f"[{capture.label}] route.continue_ failed: {e}")

        await page.route("**/*", on_route)
        page.on("response", lambda response: capture.observe(response.url))

    async def _navigate(self, page: Page, target_url: str, label: str):
        try:
            await page.goto(target_url, wait_until="domcontentloaded",
                            timeout=self.timings.navigation_timeout * 1000)
        except PlaywrightError as e:
            raise NavigationError(f"navigation failed: {_first_line(e)}") from e
        log.info(f"[{label}] Page loaded")

    async def _settle(self, page: Page, capture: TrafficCapture):
        await page.wait_for_timeout(self.timings.settle_delay * 1000)
        if capture.manifest_url is None:
            if not await capture.wait_for_manifest(self.timings.manifest_timeout):
                log.info(f"[{capture.label}] No manifest after {self.timings.manifest_timeout}s wait")
        if not capture.subtitle_urls:
            # Subtitle tracks usually load a little after the playlist
            await page.wait_for_timeout(self.timings.subtitle_grace * 1000)

    async def _screenshot(self, page: Page, label: str) -> Optional[str]:
        if not self.screenshot_dir:
            return None
        name = screenshot_name(label)
        path = os.path.join(self.screenshot_dir, name)
        try:
            await page.screenshot(path=path)
        except PlaywrightError as e:
            log.warning(f"[{label}] Screenshot failed: {e}")
            return None
        log.info(f"[{label}] Screenshot saved to {path}")
        return name
