"""
Tests for site presets, run configuration and the CLI entry point.
"""

import argparse

import pytest

from doccrawl.__main__ import build_parser, main
from doccrawl.errors import ConfigError
from doccrawl.run_config import CrawlerRunConfig
from doccrawl.sites import SITE_PRESETS, SiteConfig, exclude_selector, resolve_site


# ====================================================================
# 1. Site presets
# ====================================================================

class TestSites:

    def test_presets_derive_link_selector(self):
        site = SITE_PRESETS['powerpipe']
        assert site.base_url == 'https://powerpipe.io/docs'
        assert site.link_selector == 'a[href]:not(div.mt-2 a)'

    def test_default_preset(self):
        assert resolve_site().name == 'powerpipe'

    def test_named_preset_case_insensitive(self):
        site = resolve_site(name='Guardrails')
        assert site.base_url == 'https://turbot.com/guardrails/docs'
        assert site.toc_selector == 'div.hidden a'

    def test_unknown_preset(self):
        with pytest.raises(ConfigError):
            resolve_site(name='nope')

    def test_custom_url_needs_toc_selector(self):
        with pytest.raises(ConfigError):
            resolve_site(base_url='https://example.com/docs')

    def test_custom_site(self):
        site = resolve_site(base_url='https://example.com/docs', toc_selector='nav a')
        assert site.name == 'custom'
        assert site.link_selector == exclude_selector('nav a')

    def test_toc_override_rederives_link_selector(self):
        site = resolve_site(name='steampipe', toc_selector='aside a')
        assert site.base_url == 'https://steampipe.io/docs'
        assert site.link_selector == 'a[href]:not(aside a)'

    def test_explicit_link_selector_kept(self):
        site = resolve_site(name='flowpipe', link_selector='main a[href]')
        assert site.link_selector == 'main a[href]'

    def test_site_requires_base_url(self):
        with pytest.raises(ConfigError):
            SiteConfig(name='x', base_url='', toc_selector='nav a')


# ====================================================================
# 2. Run configuration
# ====================================================================

class TestRunConfig:

    def test_defaults(self):
        cfg = CrawlerRunConfig()
        assert cfg.max_workers == 6
        assert cfg.max_pages is None
        assert cfg.enable_js is True
        assert cfg.timeout_ms == 30000

    def test_from_cli_args(self):
        args = build_parser().parse_args([
            '--workers', '3', '--max-pages', '50', '--timeout', '5',
            '--no-js', '--headed', '--output-json', 'r.json', '--fail-on-broken',
        ])
        cfg = CrawlerRunConfig.from_cli_args(args)
        assert cfg.max_workers == 3
        assert cfg.max_pages == 50
        assert cfg.timeout_ms == 5000
        assert cfg.enable_js is False
        assert cfg.headless is False
        assert cfg.output_json == 'r.json'
        assert cfg.fail_on_broken is True

    def test_site_flags_beat_environment(self):
        args = build_parser().parse_args(['--site', 'flowpipe'])
        site = CrawlerRunConfig.site_from_cli_args(args, environ={'DOCCRAWL_SITE': 'steampipe'})
        assert site.name == 'flowpipe'

    def test_site_from_environment(self):
        args = argparse.Namespace(site=None, url=None, toc_selector=None, link_selector=None)
        env = {
            'DOCCRAWL_BASE_URL': 'https://example.com/docs',
            'DOCCRAWL_TOC_SELECTOR': 'nav.sidebar a',
        }
        site = CrawlerRunConfig.site_from_cli_args(args, environ=env)
        assert site.base_url == 'https://example.com/docs'
        assert site.toc_selector == 'nav.sidebar a'


# ====================================================================
# 3. CLI
# ====================================================================

class TestCli:

    def test_list_sites(self, capsys):
        assert main(['--list-sites']) == 0
        out = capsys.readouterr().out
        for name in SITE_PRESETS:
            assert name in out

    def test_unknown_site_is_config_error(self, monkeypatch):
        monkeypatch.delenv('DOCCRAWL_SITE', raising=False)
        assert main(['--site', 'does-not-exist']) == 2

    def test_custom_url_without_selector_is_config_error(self, monkeypatch):
        monkeypatch.delenv('DOCCRAWL_SITE', raising=False)
        monkeypatch.delenv('DOCCRAWL_TOC_SELECTOR', raising=False)
        assert main(['https://example.com/docs']) == 2
