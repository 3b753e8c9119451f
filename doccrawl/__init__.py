"""
Documentation Link Crawler
Discovers every internal page of a docs site from its root, separates pages
declared in the TOC sidebar from pages only reached through in-page links,
and reports broken (404) links with the page that referred to them.

CLI Usage:
    python -m doccrawl [url] [options]

    Options:
        --site            Site preset (guardrails, flowpipe, steampipe, powerpipe)
        --toc-selector    CSS selector for TOC anchors
        --workers         Concurrent workers (default: 6)
        --no-js           Use the requests renderer instead of Playwright
        --output-json     Export the report to JSON
"""

from .crawler import DocCrawler, PageOutcome
from .errors import ConfigError, DocCrawlError, FetchError, NormalizationError
from .frontier import FrontierEntry, FrontierStore
from .renderer import LinkRef, PageRenderer, RenderedPage
from .report import BrokenLinkRecord, BrokenLinkTracker, CrawlReport, FetchFailure
from .run_config import CrawlerRunConfig
from .sites import SITE_PRESETS, SiteConfig, resolve_site
from .utils import URLNormalizer, normalize_url

__all__ = [
    'DocCrawler',
    'PageOutcome',
    'CrawlerRunConfig',
    # Frontier
    'FrontierStore',
    'FrontierEntry',
    'URLNormalizer',
    'normalize_url',
    # Reporting
    'BrokenLinkRecord',
    'BrokenLinkTracker',
    'CrawlReport',
    'FetchFailure',
    # Renderers
    'PageRenderer',
    'RenderedPage',
    'LinkRef',
    # Sites
    'SiteConfig',
    'SITE_PRESETS',
    'resolve_site',
    # Errors
    'DocCrawlError',
    'NormalizationError',
    'FetchError',
    'ConfigError',
]

__version__ = '1.0.0'
