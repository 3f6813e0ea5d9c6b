"""Headless Chromium rendering through Playwright.

One browser is shared by the run; every worker gets its own isolated
browser context and page so concurrent navigations never interleave.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import MirrorConfig
from .models import RenderedPage

logger = logging.getLogger("site_mirror")

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

AUTO_SCROLL_SCRIPT = """
async ({ step, interval, limit }) => {
  await new Promise(resolve => {
    const started = Date.now();
    let total = 0;
    const timer = setInterval(() => {
      window.scrollBy(0, step);
      total += step;
      const height = document.body ? document.body.scrollHeight : 0;
      if (total > height || Date.now() - started > limit) {
        clearInterval(timer);
        resolve();
      }
    }, interval);
  });
}
"""

BACKGROUND_IMAGES_SCRIPT = r"""
() => {
  const urls = new Set();
  const pattern = /url\((?:'|")?(.*?)(?:'|")?\)/g;
  document.querySelectorAll('*').forEach(el => {
    const bg = getComputedStyle(el).backgroundImage;
    if (!bg || bg === 'none') return;
    let match;
    while ((match = pattern.exec(bg)) !== null) {
      if (!match[1]) continue;
      try {
        urls.add(new URL(match[1], location.href).href);
      } catch (e) {}
    }
  });
  return Array.from(urls);
}
"""


class NavigationError(Exception):
    """Raised when a page cannot be loaded or read back."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class RenderTab:
    """A browser context and page owned by a single worker."""

    def __init__(self, context: BrowserContext, page: Page, config: MirrorConfig) -> None:
        self.context = context
        self.page = page
        self.config = config

    async def render(self, url: str) -> RenderedPage:
        """Load ``url``, scroll through lazy content and read the DOM back."""
        logger.debug("Loading %s", url)
        try:
            await self.page.goto(
                url,
                wait_until="networkidle",
                timeout=self.config.navigation_timeout * 1000,
            )
            await self._auto_scroll()
            html = await self.page.content()
            backgrounds: List[str] = await self.page.evaluate(BACKGROUND_IMAGES_SCRIPT)
            final_url = self.page.url
        except PlaywrightTimeoutError as exc:
            raise NavigationError(url, f"timed out: {exc}") from exc
        except PlaywrightError as exc:
            raise NavigationError(url, str(exc)) from exc
        return RenderedPage(
            url=url,
            final_url=final_url or url,
            html=html,
            background_urls=list(backgrounds or []),
        )

    async def _auto_scroll(self) -> None:
        await self.page.evaluate(
            AUTO_SCROLL_SCRIPT,
            {
                "step": self.config.scroll_step,
                "interval": int(self.config.scroll_interval * 1000),
                "limit": int(self.config.navigation_timeout * 1000),
            },
        )
        if self.config.wait_after_scroll:
            await self.page.wait_for_timeout(int(self.config.wait_after_scroll * 1000))

    async def close(self) -> None:
        try:
            await self.context.close()
        except PlaywrightError as exc:
            logger.debug("Error closing browser context: %s", exc)


class PlaywrightRenderer:
    """Async context manager owning the Playwright driver and browser."""

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        self._playwright = await async_playwright().start()
        launch_options = {"headless": True, "args": LAUNCH_ARGS}
        if self.config.proxy:
            launch_options["proxy"] = {"server": self.config.proxy}
        try:
            self._browser = await self._playwright.chromium.launch(**launch_options)
        except Exception:
            await self._playwright.stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._browser = None
        self._playwright = None

    async def new_tab(self) -> RenderTab:
        if self._browser is None:
            raise RuntimeError("Renderer is not started")
        context = await self._browser.new_context(user_agent=self.config.user_agent)
        page = await context.new_page()
        page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
        return RenderTab(context, page, self.config)
