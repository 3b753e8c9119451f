"""
Crawler Exceptions
==================
Only structural failures are exceptions. Page outcomes such as a 404, an
external redirect or an already-processed URL are reported as
``PageOutcome`` values by the crawler, never raised.
"""

from __future__ import annotations


class DocCrawlError(Exception):
    """Base class for all doccrawl errors."""


class NormalizationError(DocCrawlError):
    """A raw URL string could not be turned into a canonical URL."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot normalize URL {url!r}: {reason}")


class FetchError(DocCrawlError):
    """The renderer failed to load a page (network error, timeout, crash)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ConfigError(DocCrawlError):
    """Invalid or incomplete crawl configuration."""
