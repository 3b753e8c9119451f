#!/usr/bin/env python3
"""
Command-line entry point
========================
Crawl a documentation site, then print its broken links and who links
to them.

All configuration flows through ``CrawlerRunConfig`` and ``SiteConfig``.

Run with: python -m doccrawl [url] [options]
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .crawler import DocCrawler
from .errors import ConfigError, NormalizationError
from .report import CrawlReport, export_csv, export_json
from .run_config import CrawlerRunConfig
from .sites import DEFAULT_SITE, SITE_PRESETS

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )


def print_summary(report: CrawlReport) -> None:
    """Print crawl summary."""
    print("\n" + "=" * 65)
    print("CRAWL COMPLETE")
    print("=" * 65)
    print(f"  Processed URLs:      {report.processed_count}")
    print(f"  Enqueued URLs:       {report.enqueued_count}")
    print(f"  TOC links:           {report.toc_count}")
    print(f"  404 errors (total):  {report.broken_count}")
    print(f"  404 errors reported: {len(report.broken_links)}")
    if report.fetch_failures:
        print(f"  Fetch failures:      {len(report.fetch_failures)}")
    print(f"  Total time:          {report.elapsed_sec:.1f}s")
    print(f"  Stop reason:         {report.stop_reason}")
    print("=" * 65)
    for record in report.broken_links:
        print(f"  404 {record.url}")
        print(f"      referrer: {record.referrer}")


def _list_sites() -> None:
    for name, site in sorted(SITE_PRESETS.items()):
        marker = " (default)" if name == DEFAULT_SITE else ""
        print(f"  {name:<12} {site.base_url}  toc='{site.toc_selector}'{marker}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='doccrawl',
        description='Crawl a documentation site and report broken (404) links with their referrers',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m doccrawl                                  # default preset (powerpipe)
  python -m doccrawl --site steampipe --workers 4
  python -m doccrawl https://example.com/docs --toc-selector 'nav.sidebar a'
  python -m doccrawl --site flowpipe --no-js --output-json report.json --fail-on-broken
        """
    )

    parser.add_argument('url', nargs='?', help='Docs root URL; also the internal-page prefix')
    parser.add_argument('--site', type=str, help=f'Site preset (default: {DEFAULT_SITE})')
    parser.add_argument('--toc-selector', type=str, help='CSS selector for TOC sidebar anchors')
    parser.add_argument(
        '--link-selector', type=str,
        help='CSS selector for body links (default: every a[href] outside the TOC)',
    )
    parser.add_argument('--workers', type=int, default=6, help='Number of concurrent workers (default: 6)')
    parser.add_argument('--max-pages', type=int, default=None, help='Stop after processing N pages')
    parser.add_argument('--timeout', type=float, default=30, help='Timeout per page in seconds (default: 30)')
    parser.add_argument('--crawl-timeout', type=float, default=None, help='Overall crawl time limit in seconds')
    parser.add_argument('--no-js', action='store_true', help='Fetch raw HTML with requests instead of a browser')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--output-json', type=str, help='Write the full report as JSON')
    parser.add_argument('--output-csv', type=str, help='Write reported broken links as CSV')
    parser.add_argument('--fail-on-broken', action='store_true', help='Exit with status 1 if broken links are reported')
    parser.add_argument('--list-sites', action='store_true', help='List site presets and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None) -> int:
    """Parse argv, build config, run the crawl. Returns the process exit status."""
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.list_sites:
        _list_sites()
        return 0

    try:
        site = CrawlerRunConfig.site_from_cli_args(args)
        cfg = CrawlerRunConfig.from_cli_args(args)
        cfg.log_summary(site)
        crawler = DocCrawler(site, cfg)
    except (ConfigError, NormalizationError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    report = crawler.run()

    exported = []
    if cfg.output_json:
        exported.append(export_json(report, cfg.output_json))
    if cfg.output_csv:
        exported.append(export_csv(report, cfg.output_csv))
    for path in exported:
        logger.info(f"Exported: {path}")

    print_summary(report)

    if cfg.fail_on_broken and report.has_broken_links:
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
