"""
Site Presets
============
Per-site crawl targets: the docs root (which doubles as the internal-page
prefix) and the CSS selectors that tell TOC anchors apart from body links.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)


def exclude_selector(toc_selector: str) -> str:
    """Selector for every anchor that is *not* matched by ``toc_selector``."""
    return f"a[href]:not({toc_selector})"


@dataclass(frozen=True)
class SiteConfig:
    """One documentation site to crawl."""
    name: str
    base_url: str
    toc_selector: str
    link_selector: str = ""

    def __post_init__(self):
        if not self.base_url:
            raise ConfigError(f"Site '{self.name}' has no base URL")
        if not self.toc_selector:
            raise ConfigError(f"Site '{self.name}' has no TOC selector")
        if not self.link_selector:
            object.__setattr__(self, 'link_selector', exclude_selector(self.toc_selector))


SITE_PRESETS: Dict[str, SiteConfig] = {
    'guardrails': SiteConfig(
        name='guardrails',
        base_url='https://turbot.com/guardrails/docs',
        toc_selector='div.hidden a',
    ),
    'flowpipe': SiteConfig(
        name='flowpipe',
        base_url='https://flowpipe.io/docs',
        toc_selector='div.mt-2 a',
    ),
    'steampipe': SiteConfig(
        name='steampipe',
        base_url='https://steampipe.io/docs',
        toc_selector='div.mt-2 a',
    ),
    'powerpipe': SiteConfig(
        name='powerpipe',
        base_url='https://powerpipe.io/docs',
        toc_selector='div.mt-2 a',
    ),
}

DEFAULT_SITE = 'powerpipe'


def resolve_site(
    name: Optional[str] = None,
    base_url: Optional[str] = None,
    toc_selector: Optional[str] = None,
    link_selector: Optional[str] = None,
) -> SiteConfig:
    """
    Build a ``SiteConfig`` from a preset name plus explicit overrides.

    With no preset name and no base URL the default preset is used. A custom
    base URL without a preset needs an explicit TOC selector.
    """
    preset = None
    if name:
        preset = SITE_PRESETS.get(name.lower())
        if preset is None:
            known = ', '.join(sorted(SITE_PRESETS))
            raise ConfigError(f"Unknown site preset '{name}' (known: {known})")
    elif not base_url:
        preset = SITE_PRESETS[DEFAULT_SITE]

    toc = toc_selector or (preset.toc_selector if preset else None)
    if not toc:
        raise ConfigError("A TOC selector is required for a custom base URL (--toc-selector)")

    # A preset's link selector is derived from its TOC selector, so only
    # carry it over when the TOC selector was not overridden.
    links = link_selector
    if not links and preset and not toc_selector:
        links = preset.link_selector

    return SiteConfig(
        name=preset.name if preset else 'custom',
        base_url=base_url or preset.base_url,
        toc_selector=toc,
        link_selector=links or '',
    )
