"""
Tests for broken-link tracking, report building and exports (report.py).
"""

import asyncio
import csv
import json

from doccrawl.frontier import FrontierStore
from doccrawl.report import (
    BrokenLinkRecord,
    BrokenLinkTracker,
    CrawlReport,
    build_report,
    export_csv,
    export_json,
    log_report,
)
from doccrawl.utils import URLNormalizer

BASE = "https://site/docs"


def _store_with_toc(*toc_urls):
    async def _go():
        store = FrontierStore(URLNormalizer(BASE))
        await store.capture_toc(list(toc_urls))
        for url in (BASE, f"{BASE}/b", f"{BASE}/c"):
            await store.try_mark_processed(url)
        return store
    return asyncio.run(_go())


class TestTracker:

    def test_record_appends_without_dedup(self):
        tracker = BrokenLinkTracker()
        tracker.record(f"{BASE}/c", BASE)
        tracker.record(f"{BASE}/c", f"{BASE}/a")
        assert len(tracker) == 2
        assert tracker.records[0] == BrokenLinkRecord(f"{BASE}/c", BASE)

    def test_failures_kept_separately(self):
        tracker = BrokenLinkTracker()
        tracker.record_failure(f"{BASE}/x", BASE, "timeout")
        assert len(tracker) == 0
        assert tracker.failures[0].error == "timeout"


class TestBuildReport:

    def test_toc_urls_filtered_from_broken_links(self):
        store = _store_with_toc(f"{BASE}/b")
        tracker = BrokenLinkTracker()
        tracker.record(f"{BASE}/b", "Initial TOC page")
        tracker.record(f"{BASE}/c", BASE)

        report = build_report(tracker, store, elapsed_sec=1.234)

        assert report.broken_links == [BrokenLinkRecord(f"{BASE}/c", BASE)]
        assert report.broken_count == 2
        assert report.processed_count == 3
        assert report.enqueued_count == 1
        assert report.toc_count == 1
        assert report.elapsed_sec == 1.23
        assert report.has_broken_links

    def test_clean_crawl(self):
        report = build_report(BrokenLinkTracker(), _store_with_toc(f"{BASE}/b"))
        assert report.broken_links == []
        assert report.broken_count == 0
        assert report.stop_reason == "completed"


class TestLogReport:

    def test_logs_each_broken_link_and_totals(self, caplog):
        report = CrawlReport(
            broken_links=[BrokenLinkRecord(f"{BASE}/c", BASE)],
            processed_count=4, enqueued_count=3, broken_count=2,
        )
        with caplog.at_level("INFO"):
            log_report(report)
        assert "List of 404 URLs and their referrers:" in caplog.text
        assert f"404 URL: {BASE}/c" in caplog.text
        assert f"Referrer: {BASE}" in caplog.text
        assert "Total processed URLs: 4" in caplog.text
        assert "Total enqueued URLs: 3" in caplog.text
        assert "Total 404 errors: 2" in caplog.text

    def test_logs_no_errors(self, caplog):
        with caplog.at_level("INFO"):
            log_report(CrawlReport())
        assert "No 404 errors found." in caplog.text


class TestExports:

    def _report(self):
        return CrawlReport(
            broken_links=[BrokenLinkRecord(f"{BASE}/c", BASE)],
            processed_count=4, enqueued_count=3, broken_count=2, toc_count=2,
        )

    def test_export_json(self, tmp_path):
        path = export_json(self._report(), str(tmp_path / "out" / "report.json"))
        data = json.loads(open(path, encoding="utf-8").read())
        assert data["broken_links"] == [{"url": f"{BASE}/c", "referrer": BASE}]
        assert data["processed_count"] == 4
        assert data["broken_count"] == 2

    def test_export_csv(self, tmp_path):
        path = export_csv(self._report(), str(tmp_path / "report.csv"))
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows == [{"url": f"{BASE}/c", "referrer": BASE}]
