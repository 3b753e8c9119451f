"""
Page Renderer Contract (Abstract)
=================================
The crawler never fetches or parses pages itself. It talks to a
``PageRenderer``, which owns the HTTP/browser side:

    1. ``fetch(url)``          -> landed URL (after redirects) + status code
    2. ``extract_toc(page)``   -> raw hrefs matched by the site's TOC selector
    3. ``extract_links(page)`` -> ``(href, text)`` pairs for every other anchor
    4. ``release(page)``       -> free whatever ``fetch`` allocated

Implementations:
    - ``browser.PlaywrightRenderer`` (JS-rendered, default)
    - ``static.StaticRenderer``      (requests + BeautifulSoup)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

from .sites import SiteConfig


@dataclass
class RenderedPage:
    """A fetched page as seen by the crawler core."""
    landed_url: str
    status_code: int
    handle: Any = None
    """Renderer-specific page object (Playwright ``Page``, parsed soup, ...)."""


@dataclass(frozen=True)
class LinkRef:
    href: str
    text: str = ""


class PageRenderer(ABC):
    """Abstract base for page renderers.

    ``fetch`` must raise ``errors.FetchError`` on transport failures; any
    status code the server answers with, 404 included, is a successful fetch.
    """

    def __init__(self, site: SiteConfig):
        self.site = site

    async def start(self) -> None:
        """Acquire long-lived resources (browser, HTTP session)."""

    async def close(self) -> None:
        """Release long-lived resources."""

    @abstractmethod
    async def fetch(self, url: str) -> RenderedPage:
        ...

    @abstractmethod
    async def extract_toc(self, page: RenderedPage) -> List[str]:
        ...

    @abstractmethod
    async def extract_links(self, page: RenderedPage) -> List[LinkRef]:
        ...

    async def release(self, page: RenderedPage) -> None:
        """Free per-page resources. Default: nothing to free."""
