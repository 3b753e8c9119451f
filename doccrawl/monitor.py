"""
Performance Monitor
====================
Progress and timing metrics for the async crawler.

Tracks:
- Pages per outcome (ok, 404, skipped, failed)
- Pages/sec (rolling 30s window + overall)
- Queue size and peak
- Worker utilization
- Per-page timing (navigate, extract)

All methods use an asyncio.Lock for safe concurrent access.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

logger = logging.getLogger(__name__)

# Rolling window for pages/sec calculation
_ROLLING_WINDOW_SEC = 30.0


@dataclass
class PageTiming:
    """Timing breakdown for a single page."""
    url: str = ""
    navigate_ms: float = 0.0
    extract_ms: float = 0.0
    total_ms: float = 0.0
    link_count: int = 0
    status: str = "ok"   # ok | not_found | skipped | failed


@dataclass
class CrawlMetrics:
    """Snapshot of all crawler metrics at a point in time."""
    pages_ok: int = 0
    pages_not_found: int = 0
    pages_skipped: int = 0
    pages_failed: int = 0

    pages_per_sec_rolling: float = 0.0
    pages_per_sec_overall: float = 0.0

    queue_size: int = 0
    queue_peak: int = 0

    active_workers: int = 0
    max_workers: int = 0

    links_seen: int = 0

    avg_page_ms: float = 0.0
    avg_navigate_ms: float = 0.0
    avg_extract_ms: float = 0.0
    p95_page_ms: float = 0.0

    elapsed_sec: float = 0.0
    stop_reason: str = ""


class PerformanceMonitor:
    """
    Async-safe performance monitor for the crawler.

    Usage::

        monitor = PerformanceMonitor(max_workers=6)
        await monitor.start()

        # In each worker:
        timing = PageTiming(url=url)
        timing.navigate_ms = ...
        await monitor.record_page(timing)

        metrics = await monitor.snapshot()
        await monitor.stop()
    """

    def __init__(self, max_workers: int = 6, interval_s: float = 10.0):
        self._lock = asyncio.Lock()
        self._start_time: float = 0.0
        self._max_workers = max_workers
        self._interval_s = interval_s

        self._counts = {"ok": 0, "not_found": 0, "skipped": 0, "failed": 0}
        self._links_seen = 0

        self._queue_size = 0
        self._queue_peak = 0
        self._active_workers = 0

        self._recent_timestamps: Deque[float] = deque()
        # Keep the last 1000 timings for percentile calc
        self._page_timings: Deque[PageTiming] = deque(maxlen=1000)

        self._reporter_task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_reason = ""

    async def start(self) -> None:
        """Start the monitor and periodic reporter."""
        self._start_time = time.monotonic()
        self._running = True
        if self._interval_s > 0:
            self._reporter_task = asyncio.create_task(self._reporter_loop())

    async def stop(self, reason: str = "completed") -> None:
        self._running = False
        self._stop_reason = reason
        if self._reporter_task:
            self._reporter_task.cancel()
            try:
                await self._reporter_task
            except asyncio.CancelledError:
                pass
            self._reporter_task = None

    async def record_page(self, timing: PageTiming) -> None:
        now = time.monotonic()
        async with self._lock:
            self._counts[timing.status] = self._counts.get(timing.status, 0) + 1
            self._links_seen += timing.link_count
            self._page_timings.append(timing)
            if timing.status in ("ok", "not_found"):
                self._recent_timestamps.append(now)
            self._prune(now)

    async def update_queue_size(self, size: int) -> None:
        async with self._lock:
            self._queue_size = size
            if size > self._queue_peak:
                self._queue_peak = size

    async def worker_started(self) -> None:
        async with self._lock:
            self._active_workers += 1

    async def worker_finished(self) -> None:
        async with self._lock:
            self._active_workers = max(0, self._active_workers - 1)

    def _prune(self, now: float) -> None:
        cutoff = now - _ROLLING_WINDOW_SEC
        while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
            self._recent_timestamps.popleft()

    async def snapshot(self) -> CrawlMetrics:
        """Take a consistent snapshot of all metrics."""
        now = time.monotonic()
        async with self._lock:
            elapsed = now - self._start_time if self._start_time else 0.0
            self._prune(now)

            rolling_count = len(self._recent_timestamps)
            rolling_pps = rolling_count / _ROLLING_WINDOW_SEC if rolling_count else 0.0
            fetched = self._counts["ok"] + self._counts["not_found"]
            overall_pps = fetched / elapsed if elapsed > 0 else 0.0

            timings = [t.total_ms for t in self._page_timings if t.total_ms > 0]
            avg_page = sum(timings) / len(timings) if timings else 0.0
            nav_times = [t.navigate_ms for t in self._page_timings if t.navigate_ms > 0]
            avg_nav = sum(nav_times) / len(nav_times) if nav_times else 0.0
            ext_times = [t.extract_ms for t in self._page_timings if t.extract_ms > 0]
            avg_ext = sum(ext_times) / len(ext_times) if ext_times else 0.0

            p95 = 0.0
            if timings:
                sorted_t = sorted(timings)
                idx = int(len(sorted_t) * 0.95)
                p95 = sorted_t[min(idx, len(sorted_t) - 1)]

            return CrawlMetrics(
                pages_ok=self._counts["ok"],
                pages_not_found=self._counts["not_found"],
                pages_skipped=self._counts["skipped"],
                pages_failed=self._counts["failed"],
                pages_per_sec_rolling=round(rolling_pps, 2),
                pages_per_sec_overall=round(overall_pps, 2),
                queue_size=self._queue_size,
                queue_peak=self._queue_peak,
                active_workers=self._active_workers,
                max_workers=self._max_workers,
                links_seen=self._links_seen,
                avg_page_ms=round(avg_page, 1),
                avg_navigate_ms=round(avg_nav, 1),
                avg_extract_ms=round(avg_ext, 1),
                p95_page_ms=round(p95, 1),
                elapsed_sec=round(elapsed, 2),
                stop_reason=self._stop_reason,
            )

    async def _reporter_loop(self) -> None:
        """Periodically log metrics."""
        while self._running:
            await asyncio.sleep(self._interval_s)
            if not self._running:
                break
            m = await self.snapshot()
            logger.info(
                f"[MONITOR] "
                f"ok={m.pages_ok} "
                f"404={m.pages_not_found} "
                f"skip={m.pages_skipped} "
                f"fail={m.pages_failed} "
                f"queue={m.queue_size} "
                f"workers={m.active_workers}/{m.max_workers} "
                f"speed={m.pages_per_sec_rolling:.1f} p/s (rolling) "
                f"avg={m.avg_page_ms:.0f}ms "
                f"elapsed={m.elapsed_sec:.0f}s"
            )

    def format_summary(self, metrics: CrawlMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  CRAWL PERFORMANCE SUMMARY",
            "=" * 65,
            f"  Pages OK:            {metrics.pages_ok}",
            f"  Pages 404:           {metrics.pages_not_found}",
            f"  Pages skipped:       {metrics.pages_skipped} (duplicate/external/malformed)",
            f"  Pages failed:        {metrics.pages_failed}",
            "-" * 65,
            f"  Overall speed:       {metrics.pages_per_sec_overall:.2f} pages/sec",
            f"  Avg page time:       {metrics.avg_page_ms:.0f} ms",
            f"  Avg navigate time:   {metrics.avg_navigate_ms:.0f} ms",
            f"  Avg extract time:    {metrics.avg_extract_ms:.0f} ms",
            f"  P95 page time:       {metrics.p95_page_ms:.0f} ms",
            "-" * 65,
            f"  Queue peak:          {metrics.queue_peak}",
            f"  Workers:             {metrics.max_workers}",
            f"  Links seen:          {metrics.links_seen}",
            "-" * 65,
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
