"""
Shared test doubles: an in-memory site served by a fake renderer, so the
crawler can be exercised without a browser or network.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from doccrawl.crawler import DocCrawler
from doccrawl.errors import FetchError
from doccrawl.renderer import LinkRef, PageRenderer, RenderedPage
from doccrawl.run_config import CrawlerRunConfig
from doccrawl.sites import SiteConfig

BASE_URL = "https://site/docs"


@dataclass
class FakePage:
    status: int = 200
    toc: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    redirect: Optional[str] = None
    error: Optional[str] = None


class FakeRenderer(PageRenderer):
    """Serves ``FakePage`` objects keyed by URL; unknown URLs answer 404."""

    def __init__(self, site: SiteConfig, pages: Dict[str, FakePage]):
        super().__init__(site)
        self.pages = pages
        self.fetched: List[str] = []
        self.link_extractions: List[str] = []
        self.released = 0
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def fetch(self, url: str) -> RenderedPage:
        self.fetched.append(url)
        # Yield so concurrent workers interleave
        await asyncio.sleep(0)
        page = self.pages.get(url)
        if page and page.error:
            raise FetchError(url, page.error)
        landed = url
        if page and page.redirect:
            landed = page.redirect
            page = self.pages.get(landed)
        if page is None:
            return RenderedPage(landed_url=landed, status_code=404, handle=FakePage(status=404))
        return RenderedPage(landed_url=landed, status_code=page.status, handle=page)

    async def extract_toc(self, page: RenderedPage) -> List[str]:
        return list(page.handle.toc)

    async def extract_links(self, page: RenderedPage) -> List[LinkRef]:
        self.link_extractions.append(page.landed_url)
        return [LinkRef(href=href, text=href.rsplit('/', 1)[-1]) for href in page.handle.links]

    async def release(self, page: RenderedPage) -> None:
        self.released += 1


@pytest.fixture
def site():
    return SiteConfig(name="test", base_url=BASE_URL, toc_selector="nav.toc a")


@pytest.fixture
def make_crawler(site):
    """Factory: make_crawler(pages, **config_overrides) -> (crawler, renderer)."""

    def _make(pages: Dict[str, FakePage], **overrides):
        options = {"max_workers": 1, "monitor_interval_s": 0}
        options.update(overrides)
        renderer = FakeRenderer(site, pages)
        crawler = DocCrawler(site, CrawlerRunConfig(**options), renderer=renderer)
        return crawler, renderer

    return _make
