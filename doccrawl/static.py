"""
Static Renderer
===============
requests + BeautifulSoup renderer for sites whose TOC and links are in the
server-rendered HTML. Much faster than a browser; used with ``--no-js``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .errors import FetchError
from .renderer import LinkRef, PageRenderer, RenderedPage
from .run_config import CrawlerRunConfig
from .sites import SiteConfig

logger = logging.getLogger(__name__)

_BS_PARSER = "lxml"

_HTML_CONTENT_TYPES = ('text/html', 'application/xhtml')


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, _BS_PARSER)


def _document_base(soup: BeautifulSoup, page_url: str) -> str:
    """The URL relative hrefs resolve against (honours ``<base href>``)."""
    base = soup.find('base', href=True)
    if base:
        return urljoin(page_url, base['href'])
    return page_url


def select_toc_hrefs(soup: BeautifulSoup, selector: str, page_url: str) -> List[str]:
    """Absolute hrefs of every anchor matched by the TOC selector."""
    base = _document_base(soup, page_url)
    return [
        urljoin(base, el['href'])
        for el in soup.select(selector)
        if el.get('href')
    ]


def select_links(soup: BeautifulSoup, selector: str, page_url: str) -> List[LinkRef]:
    """``(href, text)`` for every anchor matched by the link selector."""
    base = _document_base(soup, page_url)
    return [
        LinkRef(href=urljoin(base, el['href']), text=el.get_text(strip=True))
        for el in soup.select(selector)
        if el.get('href')
    ]


class StaticRenderer(PageRenderer):
    """Renderer that fetches raw HTML with requests (no JavaScript)."""

    def __init__(self, site: SiteConfig, config: Optional[CrawlerRunConfig] = None):
        super().__init__(site)
        self.config = config or CrawlerRunConfig()
        self._session: Optional[requests.Session] = None

    async def start(self) -> None:
        self._session = requests.Session()
        self._session.headers.update({
            'User-Agent': self.config.user_agent,
            'Accept': 'text/html,application/xhtml+xml',
            'Accept-Language': 'en-US,en;q=0.9',
        })
        logger.info("Static renderer initialized (requests + BeautifulSoup)")

    async def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None

    async def fetch(self, url: str) -> RenderedPage:
        if self._session is None:
            raise FetchError(url, "session not started")

        loop = asyncio.get_running_loop()

        def _sync_fetch():
            return self._session.get(
                url,
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )

        try:
            response = await loop.run_in_executor(None, _sync_fetch)
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        soup = None
        content_type = (response.headers.get('content-type') or '').lower()
        if not content_type or any(t in content_type for t in _HTML_CONTENT_TYPES):
            soup = parse_html(response.text)
        else:
            logger.debug(f"[STATIC] Non-HTML response for {url} ({content_type.split(';')[0]})")

        return RenderedPage(landed_url=response.url, status_code=response.status_code, handle=soup)

    async def extract_toc(self, page: RenderedPage) -> List[str]:
        if page.handle is None:
            return []
        return select_toc_hrefs(page.handle, self.site.toc_selector, page.landed_url)

    async def extract_links(self, page: RenderedPage) -> List[LinkRef]:
        if page.handle is None:
            return []
        return select_links(page.handle, self.site.link_selector, page.landed_url)
