"""
Broken-Link Tracking & Reporting
================================
Accumulates 404 records (with the page that referred to them) while the
crawl runs, then builds the final ``CrawlReport`` once it has drained.

404s for URLs declared in the TOC are left out of ``broken_links``. That
mirrors the behaviour maintainers currently rely on; ``broken_count`` still
counts every 404 seen.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List

from .frontier import FrontierStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrokenLinkRecord:
    url: str
    referrer: str


@dataclass(frozen=True)
class FetchFailure:
    """A page the renderer could not load at all."""
    url: str
    referrer: str
    error: str


class BrokenLinkTracker:
    """Append-only store of 404 records and fetch failures."""

    def __init__(self):
        self._records: List[BrokenLinkRecord] = []
        self._failures: List[FetchFailure] = []

    def record(self, url: str, referrer: str) -> BrokenLinkRecord:
        record = BrokenLinkRecord(url=url, referrer=referrer)
        self._records.append(record)
        return record

    def record_failure(self, url: str, referrer: str, error: str) -> FetchFailure:
        failure = FetchFailure(url=url, referrer=referrer, error=error)
        self._failures.append(failure)
        return failure

    @property
    def records(self) -> List[BrokenLinkRecord]:
        return list(self._records)

    @property
    def failures(self) -> List[FetchFailure]:
        return list(self._failures)

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class CrawlReport:
    """Final crawl output."""
    broken_links: List[BrokenLinkRecord] = field(default_factory=list)
    processed_count: int = 0
    enqueued_count: int = 0
    broken_count: int = 0
    toc_count: int = 0
    fetch_failures: List[FetchFailure] = field(default_factory=list)
    stop_reason: str = "completed"
    elapsed_sec: float = 0.0

    @property
    def has_broken_links(self) -> bool:
        return bool(self.broken_links)

    def to_dict(self) -> Dict:
        return {
            'broken_links': [asdict(r) for r in self.broken_links],
            'processed_count': self.processed_count,
            'enqueued_count': self.enqueued_count,
            'broken_count': self.broken_count,
            'toc_count': self.toc_count,
            'fetch_failures': [asdict(f) for f in self.fetch_failures],
            'stop_reason': self.stop_reason,
            'elapsed_sec': self.elapsed_sec,
        }


def build_report(
    tracker: BrokenLinkTracker,
    store: FrontierStore,
    stop_reason: str = "completed",
    elapsed_sec: float = 0.0,
) -> CrawlReport:
    """Filter the tracked 404s against the TOC and attach the crawl counters."""
    records = tracker.records
    reported = []
    for record in records:
        if store.is_toc_url(record.url):
            logger.debug(f"Skipped logging 404 for TOC link: {record.url}")
            continue
        reported.append(record)

    return CrawlReport(
        broken_links=reported,
        processed_count=store.processed_count,
        enqueued_count=store.enqueued_count,
        broken_count=len(records),
        toc_count=len(store.toc_urls),
        fetch_failures=tracker.failures,
        stop_reason=stop_reason,
        elapsed_sec=round(elapsed_sec, 2),
    )


def log_report(report: CrawlReport) -> None:
    """Emit the broken-link list and totals to the log."""
    if report.broken_links:
        logger.info("List of 404 URLs and their referrers:")
        for record in report.broken_links:
            logger.info(f"404 URL: {record.url}")
            logger.info(f"Referrer: {record.referrer}")
            logger.info("---")
    else:
        logger.info("No 404 errors found.")

    if report.fetch_failures:
        logger.warning(f"{len(report.fetch_failures)} pages could not be fetched:")
        for failure in report.fetch_failures:
            logger.warning(f"  {failure.url} (referrer: {failure.referrer}): {failure.error}")

    logger.info(f"Total processed URLs: {report.processed_count}")
    logger.info(f"Total enqueued URLs: {report.enqueued_count}")
    logger.info(f"Total 404 errors: {report.broken_count}")


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

def export_json(report: CrawlReport, filepath: str) -> str:
    """Write the full report as JSON. Returns the absolute path."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
    return str(path.absolute())


def export_csv(report: CrawlReport, filepath: str) -> str:
    """Write one ``url,referrer`` row per reported broken link."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=['url', 'referrer'])
        writer.writeheader()
        writer.writerows(asdict(r) for r in report.broken_links)
    return str(path.absolute())
