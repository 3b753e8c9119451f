"""
Tests for the performance monitor (monitor.py).
"""

import asyncio

from doccrawl.monitor import PageTiming, PerformanceMonitor


def _record(*timings):
    async def _go():
        monitor = PerformanceMonitor(max_workers=2, interval_s=0)
        await monitor.start()
        for timing in timings:
            await monitor.record_page(timing)
        await monitor.stop("completed")
        return monitor, await monitor.snapshot()
    return asyncio.run(_go())


class TestSnapshot:

    def test_counts_by_status(self):
        _, metrics = _record(
            PageTiming(url="a", status="ok", link_count=3),
            PageTiming(url="b", status="not_found"),
            PageTiming(url="c", status="skipped"),
            PageTiming(url="d", status="failed"),
        )
        assert (metrics.pages_ok, metrics.pages_not_found) == (1, 1)
        assert (metrics.pages_skipped, metrics.pages_failed) == (1, 1)
        assert metrics.links_seen == 3
        assert metrics.stop_reason == "completed"

    def test_average_timings_ignore_unmeasured_pages(self):
        _, metrics = _record(
            PageTiming(url="a", navigate_ms=100.0, extract_ms=10.0, total_ms=120.0),
            PageTiming(url="b", navigate_ms=300.0, extract_ms=30.0, total_ms=340.0),
            PageTiming(url="c", status="not_found", navigate_ms=50.0, total_ms=50.0),
        )
        assert metrics.avg_navigate_ms == 150.0
        assert metrics.avg_extract_ms == 20.0
        assert metrics.avg_page_ms == 170.0

    def test_summary_reports_extract_time(self):
        monitor, metrics = _record(
            PageTiming(url="a", navigate_ms=100.0, extract_ms=12.0, total_ms=120.0),
        )
        summary = monitor.format_summary(metrics)
        assert "Avg extract time:    12 ms" in summary
        assert "Pages OK:            1" in summary
