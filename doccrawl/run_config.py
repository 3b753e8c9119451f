"""
Unified Run Configuration
=========================
Single source of truth for crawler defaults and runtime limits.

The CLI flags and environment populate a ``CrawlerRunConfig``; the crawler,
the renderers and the exporters all read from it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .sites import SiteConfig, resolve_site

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_workers": 6,
    "max_pages": None,               # None = crawl until the frontier drains
    "timeout_seconds": 30,           # per-page navigation timeout
    "crawl_timeout_s": None,         # overall wall-clock limit
    "headless": True,
    "enable_js": True,
    "wait_until": "networkidle",     # Playwright goto wait condition
    "block_resources": True,         # skip images/fonts/media in the browser
    "user_agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "monitor_interval_s": 10.0,
    "output_json": None,
    "output_csv": None,
    "fail_on_broken": False,
}

# Environment variables consulted when the matching flag is absent
ENV_SITE = "DOCCRAWL_SITE"
ENV_BASE_URL = "DOCCRAWL_BASE_URL"
ENV_TOC_SELECTOR = "DOCCRAWL_TOC_SELECTOR"
ENV_LINK_SELECTOR = "DOCCRAWL_LINK_SELECTOR"


@dataclass
class CrawlerRunConfig:
    """
    Configuration consumed by every crawler subsystem.

    Populate via:
      - ``CrawlerRunConfig()``                 → all defaults
      - ``CrawlerRunConfig(max_workers=2)``     → override one value
      - ``CrawlerRunConfig.from_cli_args(ns)``  → from argparse Namespace
    """

    # ---- Concurrency & limits ----
    max_workers: int = _DEFAULTS["max_workers"]
    max_pages: Optional[int] = _DEFAULTS["max_pages"]
    timeout_seconds: float = _DEFAULTS["timeout_seconds"]
    crawl_timeout_s: Optional[float] = _DEFAULTS["crawl_timeout_s"]

    # ---- Rendering ----
    headless: bool = _DEFAULTS["headless"]
    enable_js: bool = _DEFAULTS["enable_js"]
    wait_until: str = _DEFAULTS["wait_until"]
    block_resources: bool = _DEFAULTS["block_resources"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Progress ----
    monitor_interval_s: float = _DEFAULTS["monitor_interval_s"]

    # ---- Output (None = skip) ----
    output_json: Optional[str] = _DEFAULTS["output_json"]
    output_csv: Optional[str] = _DEFAULTS["output_csv"]
    fail_on_broken: bool = _DEFAULTS["fail_on_broken"]

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout_seconds * 1000)

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "CrawlerRunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        return cls(
            max_workers=getattr(args, "workers", _DEFAULTS["max_workers"]),
            max_pages=getattr(args, "max_pages", _DEFAULTS["max_pages"]),
            timeout_seconds=getattr(args, "timeout", _DEFAULTS["timeout_seconds"]),
            crawl_timeout_s=getattr(args, "crawl_timeout", _DEFAULTS["crawl_timeout_s"]),
            headless=not getattr(args, "headed", False),
            enable_js=not getattr(args, "no_js", False),
            output_json=getattr(args, "output_json", None),
            output_csv=getattr(args, "output_csv", None),
            fail_on_broken=getattr(args, "fail_on_broken", False),
        )

    @staticmethod
    def site_from_cli_args(args, environ=None) -> SiteConfig:
        """Resolve the target site: flags first, then environment, then presets."""
        env = os.environ if environ is None else environ
        return resolve_site(
            name=getattr(args, "site", None) or env.get(ENV_SITE),
            base_url=getattr(args, "url", None) or env.get(ENV_BASE_URL),
            toc_selector=getattr(args, "toc_selector", None) or env.get(ENV_TOC_SELECTOR),
            link_selector=getattr(args, "link_selector", None) or env.get(ENV_LINK_SELECTOR),
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, site: SiteConfig) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("CRAWL RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Site:             {site.name}")
        logger.info(f"  Base URL:         {site.base_url}")
        logger.info(f"  TOC Selector:     {site.toc_selector}")
        logger.info(f"  Link Selector:    {site.link_selector}")
        logger.info(f"  Renderer:         {'Playwright' if self.enable_js else 'static (requests)'}")
        logger.info(f"  Workers:          {self.max_workers}")
        logger.info(f"  Max Pages:        {self.max_pages or 'unlimited'}")
        logger.info(f"  Timeout:          {self.timeout_seconds}s per page")
        if self.crawl_timeout_s:
            logger.info(f"  Crawl Timeout:    {self.crawl_timeout_s}s")
        logger.info("=" * 60)
