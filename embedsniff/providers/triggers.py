"""
Trigger strategies: how to poke a provider page so its player starts
fetching media. Kept per provider so one site's DOM quirks stay local.
"""
from __future__ import annotations
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import TriggerNotFoundError

log = logging.getLogger("embedsniff.providers.triggers")

JS_CLICK = "(selector) => { const el = document.querySelector(selector); if (el) el.click(); }"


class TriggerStrategy:
    async def activate(self, page: Page, timeout: float, label: str = "") -> None:
        raise NotImplementedError


class ClickTrigger(TriggerStrategy):
    """Click the centre of a known element; fall back to a JS click when it has no box.

    Some players are rendered off-screen or with zero size, where a mouse click
    at coordinates would silently miss.
    """

    def __init__(self, selector: str):
        self.selector = selector

    def __repr__(self):
        return f"ClickTrigger({self.selector!r})"

    async def activate(self, page: Page, timeout: float, label: str = "") -> None:
        try:
            element = await page.wait_for_selector(self.selector, timeout=timeout * 1000)
        except PlaywrightError as e:
            log.warning(f"[{label}] {self.selector} not found: {e}")
            raise TriggerNotFoundError() from e
        if element is None:
            raise TriggerNotFoundError()

        box = await element.bounding_box()
        if box and box["width"] > 0 and box["height"] > 0:
            x = box["x"] + box["width"] / 2
            y = box["y"] + box["height"] / 2
            log.info(f"[{label}] Clicking {self.selector} at ({x:.1f}, {y:.1f})")
            await page.mouse.move(x, y)
            await page.mouse.click(x, y)
        else:
            log.warning(f"[{label}] No bounding box for {self.selector}, using JS click")
            await page.evaluate(JS_CLICK, self.selector)
