"""
Async Crawl Orchestrator
========================
Worker pool that drains the frontier and classifies every page.

Architecture:
- One ``FrontierStore`` (queue + processed/enqueued/TOC sets) per crawl
- N worker coroutines, each handling one dequeued entry at a time
- A ``PageRenderer`` collaborator does all fetching and DOM queries
- ``FrontierStore.join()`` is the termination barrier: the crawl ends when
  the queue is empty and no entry is in flight

Per-entry state machine (``DocCrawler.process_entry``)::

    Dispatched -> Landed -> Skipped (malformed | external | duplicate)
                         -> Classified -> NotFound (recorded)
                                       -> Success  (links enqueued)

Which page gets credited as referrer for a link found on several pages
depends on which worker finishes first. Only one referrer is kept per URL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from .errors import FetchError
from .frontier import REFERRER_UNKNOWN, FrontierEntry, FrontierStore
from .monitor import PageTiming, PerformanceMonitor
from .renderer import PageRenderer, RenderedPage
from .report import BrokenLinkTracker, CrawlReport, build_report, log_report
from .run_config import CrawlerRunConfig
from .sites import SiteConfig
from .utils import URLNormalizer

logger = logging.getLogger(__name__)

NOT_FOUND_STATUS = 404


class PageOutcome(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    SKIPPED_MALFORMED = "skipped_malformed"
    SKIPPED_EXTERNAL = "skipped_external"
    SKIPPED_DUPLICATE = "skipped_duplicate"

    @property
    def monitor_status(self) -> str:
        if self is PageOutcome.SUCCESS:
            return "ok"
        if self is PageOutcome.NOT_FOUND:
            return "not_found"
        return "skipped"


class DocCrawler:
    """
    Crawls a documentation site and reports broken links.

    Usage::

        site = SITE_PRESETS['powerpipe']
        crawler = DocCrawler(site, CrawlerRunConfig(max_workers=4))
        report = await crawler.crawl()

        # Or from sync code:
        report = crawler.run()
    """

    def __init__(
        self,
        site: SiteConfig,
        config: Optional[CrawlerRunConfig] = None,
        renderer: Optional[PageRenderer] = None,
    ):
        self.site = site
        self.config = config or CrawlerRunConfig()
        self.normalizer = URLNormalizer(site.base_url)
        self.renderer = renderer or self._default_renderer()

        # State (reset per crawl)
        self.monitor = self._new_monitor()
        self.store: Optional[FrontierStore] = None
        self.tracker = BrokenLinkTracker()
        self._stop_requested = False
        self._stop_reason = "completed"

    def _new_monitor(self) -> PerformanceMonitor:
        return PerformanceMonitor(
            max_workers=self.config.max_workers,
            interval_s=self.config.monitor_interval_s,
        )

    def _default_renderer(self) -> PageRenderer:
        if self.config.enable_js:
            from .browser import PlaywrightRenderer
            return PlaywrightRenderer(self.site, self.config)
        from .static import StaticRenderer
        return StaticRenderer(self.site, self.config)

    def stop(self) -> None:
        """Request a graceful stop; pages already being processed still finish."""
        self._halt("User requested stop")

    def _halt(self, reason: str) -> None:
        if self._stop_requested:
            return
        self._stop_requested = True
        self._stop_reason = reason
        logger.info(f"Stopping crawl: {reason}")
        if self.store:
            self.store.close()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, root_url: Optional[str] = None) -> CrawlReport:
        """Sync wrapper around ``crawl``."""
        return asyncio.run(self.crawl(root_url))

    async def crawl(self, root_url: Optional[str] = None) -> CrawlReport:
        """
        Crawl from ``root_url`` (default: the site's base URL) until the
        frontier drains or a limit stops it, then build the report.
        """
        root = self.normalizer.normalize(root_url or self.site.base_url)

        self.store = FrontierStore(self.normalizer)
        self.tracker = BrokenLinkTracker()
        self.monitor = self._new_monitor()
        self._stop_requested = False
        self._stop_reason = "completed"

        logger.info("=" * 65)
        logger.info("CRAWL STARTED")
        logger.info(f"Start URL: {root}")
        logger.info(f"Internal prefix: {self.normalizer.base_url}")
        logger.info(f"Workers: {self.config.max_workers}")
        logger.info("=" * 65)

        t_start = time.monotonic()
        await self.renderer.start()
        await self.monitor.start()

        workers = []
        try:
            await self.store.seed(root)
            workers = [
                asyncio.create_task(self._worker(i))
                for i in range(max(1, self.config.max_workers))
            ]
            await self._wait_for_completion()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            await self.monitor.stop(self._stop_reason)
            await self.renderer.close()

        metrics = await self.monitor.snapshot()
        logger.info("\n" + self.monitor.format_summary(metrics))

        report = build_report(
            self.tracker,
            self.store,
            stop_reason=self._stop_reason,
            elapsed_sec=time.monotonic() - t_start,
        )
        log_report(report)
        return report

    async def _wait_for_completion(self) -> None:
        """Block until the frontier drains, honouring the overall crawl timeout."""
        timeout = self.config.crawl_timeout_s
        if not timeout:
            await self.store.join()
            return
        try:
            await asyncio.wait_for(self.store.join(), timeout=timeout)
        except asyncio.TimeoutError:
            self._halt(f"Crawl timeout reached ({timeout}s)")
            # Entries already dequeued still complete
            await self.store.join()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _worker(self, worker_id: int) -> None:
        """Worker coroutine: pulls entries until the store closes or it is cancelled."""
        while True:
            entry = await self.store.dequeue()
            if entry is None:
                break
            try:
                await self.monitor.update_queue_size(self.store.pending_count)
                await self.monitor.worker_started()
                try:
                    await self.process_entry(entry)
                finally:
                    await self.monitor.worker_finished()
            except FetchError as e:
                logger.error(f"[FETCH] {entry.url}: {e.reason} (referrer: {entry.referrer})")
                self.tracker.record_failure(entry.url, entry.referrer, e.reason)
                await self.monitor.record_page(PageTiming(url=entry.url, status="failed"))
            except Exception as e:
                logger.error(f"[WORKER-{worker_id}] Unexpected error on {entry.url}: {e}", exc_info=True)
                self.tracker.record_failure(entry.url, entry.referrer, f"{type(e).__name__}: {e}")
                await self.monitor.record_page(PageTiming(url=entry.url, status="failed"))
            finally:
                self.store.task_done()

            max_pages = self.config.max_pages
            if max_pages and self.store.processed_count >= max_pages:
                self._halt(f"MAX_PAGES limit reached ({max_pages})")

    # ------------------------------------------------------------------
    # Per-entry state machine
    # ------------------------------------------------------------------

    async def process_entry(self, entry: FrontierEntry) -> PageOutcome:
        """
        Fetch and classify one frontier entry.

        Raises:
            FetchError: when the renderer cannot load the page. Not retried.
        """
        timing = PageTiming(url=entry.url)
        t_start = time.monotonic()

        page = await self.renderer.fetch(entry.url)
        timing.navigate_ms = (time.monotonic() - t_start) * 1000
        try:
            outcome = await self._classify(entry, page, timing)
        finally:
            await self.renderer.release(page)

        timing.status = outcome.monitor_status
        timing.total_ms = (time.monotonic() - t_start) * 1000
        await self.monitor.record_page(timing)
        return outcome

    async def _classify(
        self,
        entry: FrontierEntry,
        page: RenderedPage,
        timing: PageTiming,
    ) -> PageOutcome:
        landed = self.normalizer.try_normalize(page.landed_url)
        if landed is None:
            logger.warning(f"[SKIP] Malformed landed URL {page.landed_url!r} for {entry.url}")
            return PageOutcome.SKIPPED_MALFORMED

        if not self.normalizer.is_internal(landed):
            logger.debug(f"Skipping non-internal URL: {landed}")
            return PageOutcome.SKIPPED_EXTERNAL

        if not await self.store.try_mark_processed(landed):
            logger.debug(f"Already processed URL: {landed}. Skipping.")
            return PageOutcome.SKIPPED_DUPLICATE

        logger.info(f"Processing URL {self.store.processed_count}: {landed}")

        if not self.store.toc_captured:
            toc_hrefs = await self.renderer.extract_toc(page)
            if toc_hrefs:
                logger.info(f"Found {len(toc_hrefs)} TOC links.")
                await self.store.capture_toc(toc_hrefs)

        if page.status_code == NOT_FOUND_STATUS:
            referrer = entry.referrer or REFERRER_UNKNOWN
            self.tracker.record(landed, referrer)
            logger.warning(f"[404] Not Found: {landed}, Referrer: {referrer}")
            return PageOutcome.NOT_FOUND

        t_extract = time.monotonic()
        links = await self.renderer.extract_links(page)
        queued = 0
        for link in links:
            target = self.normalizer.try_normalize(link.href, base=page.landed_url)
            if target is None:
                continue
            if not self.normalizer.is_internal(target):
                logger.debug(f"Skipping external link: {target}")
                continue
            if await self.store.try_enqueue(target, referrer=landed):
                queued += 1

        timing.extract_ms = (time.monotonic() - t_extract) * 1000
        timing.link_count = len(links)
        logger.debug(f"Found {len(links)} links on {landed} ({queued} newly enqueued)")
        return PageOutcome.SUCCESS
