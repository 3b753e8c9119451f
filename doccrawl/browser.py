"""
Playwright Renderer
===================
Fetches pages in headless Chromium so JS-built navigation sidebars exist
before the TOC and link selectors run.

- Single browser, single BrowserContext shared by all workers
- One Page per fetch, closed in ``release``
- Images, fonts and media blocked at the route level
- Anchors read via a single ``$$eval`` per selector (``el.href`` is already
  absolute, resolved by the browser)
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .errors import FetchError
from .renderer import LinkRef, PageRenderer, RenderedPage
from .run_config import CrawlerRunConfig
from .sites import SiteConfig

logger = logging.getLogger(__name__)

# Resource types to block for speed
_BLOCKED_RESOURCE_TYPES = frozenset([
    "image", "media", "font",
])

_TOC_JS = "links => links.map(link => link.href)"

_LINKS_JS = """
links => links
    .map(link => ({ href: link.href, text: (link.textContent || '').trim() }))
    .filter(link => link.href)
"""


class PlaywrightRenderer(PageRenderer):
    """Renderer backed by async Playwright (Chromium)."""

    def __init__(self, site: SiteConfig, config: Optional[CrawlerRunConfig] = None):
        super().__init__(site)
        self.config = config or CrawlerRunConfig()
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    # ------------------------------------------------------------------
    # Browser management
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=[
                '--disable-gpu',
                '--no-sandbox',
                '--disable-dev-shm-usage',
                '--disable-background-networking',
                '--disable-extensions',
                '--no-first-run',
            ]
        )
        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            locale='en-US',
        )
        if self.config.block_resources:
            await self._context.route("**/*", self._route_handler)

        logger.info(
            f"Playwright browser initialized "
            f"(headless={self.config.headless}, wait_until={self.config.wait_until})"
        )

    async def _route_handler(self, route) -> None:
        """Block unnecessary resources for speed."""
        if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return
        await route.continue_()

    async def close(self) -> None:
        if self._context:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser context: {e}")
            self._context = None
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    # ------------------------------------------------------------------
    # Renderer contract
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> RenderedPage:
        if self._context is None:
            raise FetchError(url, "browser not started")

        page: Page = await self._context.new_page()
        try:
            response = await page.goto(
                url,
                timeout=self.config.timeout_ms,
                wait_until=self.config.wait_until,
            )
        except PlaywrightTimeout:
            await self._close_page(page)
            raise FetchError(url, f"timeout after {self.config.timeout_seconds}s")
        except PlaywrightError as e:
            await self._close_page(page)
            raise FetchError(url, str(e).splitlines()[0]) from e
        except asyncio.CancelledError:
            await self._close_page(page)
            raise

        if response is None:
            await self._close_page(page)
            raise FetchError(url, "no response")

        return RenderedPage(landed_url=page.url, status_code=response.status, handle=page)

    async def extract_toc(self, page: RenderedPage) -> List[str]:
        hrefs = await page.handle.eval_on_selector_all(self.site.toc_selector, _TOC_JS)
        return [h for h in hrefs if h]

    async def extract_links(self, page: RenderedPage) -> List[LinkRef]:
        links = await page.handle.eval_on_selector_all(self.site.link_selector, _LINKS_JS)
        return [LinkRef(href=link['href'], text=link.get('text', '')) for link in links]

    async def release(self, page: RenderedPage) -> None:
        if page.handle is not None:
            await self._close_page(page.handle)

    @staticmethod
    async def _close_page(page: Page) -> None:
        try:
            await page.close()
        except PlaywrightError as e:
            logger.debug(f"Error closing page: {e}")
