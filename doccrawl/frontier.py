"""
Frontier Store
==============
The crawl's only shared mutable state: the FIFO work queue plus three
dedup sets.

- ``processed`` : canonical URLs a worker has claimed and classified
- ``enqueued``  : canonical URLs ever placed on the queue
- ``toc``       : canonical URLs declared by the navigation sidebar,
                  captured once and frozen

Every mutation happens inside one ``asyncio.Lock`` critical section, so a
membership check and the insert that follows it can never interleave with
another worker. Nothing outside this class touches the sets directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set

from .utils import URLNormalizer

logger = logging.getLogger(__name__)

# Sentinel referrers
REFERRER_UNKNOWN = "Unknown"
REFERRER_INITIAL_URL = "Initial URL"
REFERRER_TOC = "Initial TOC page"


@dataclass(frozen=True)
class FrontierEntry:
    """A unit of crawl work: the page to visit and where it was found."""
    url: str
    referrer: str = REFERRER_UNKNOWN


class FrontierStore:
    """
    Async-safe queue + dedup sets.

    Usage::

        store = FrontierStore(URLNormalizer("https://example.com/docs"))
        await store.seed("https://example.com/docs")

        # In each worker:
        entry = await store.dequeue()
        if await store.try_mark_processed(landed_url):
            ...
            await store.try_enqueue(link, referrer=landed_url)
        store.task_done()

        # Coordinator:
        await store.join()
    """

    def __init__(self, normalizer: URLNormalizer):
        self.normalizer = normalizer
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue = asyncio.Queue()

        self._processed: Set[str] = set()
        self._enqueued: Set[str] = set()
        self._toc: FrozenSet[str] = frozenset()

        # Discovered links only; the seed is not counted
        self._enqueued_count = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def toc_urls(self) -> FrozenSet[str]:
        return self._toc

    @property
    def toc_captured(self) -> bool:
        return bool(self._toc)

    @property
    def processed_count(self) -> int:
        return len(self._processed)

    @property
    def enqueued_count(self) -> int:
        return self._enqueued_count

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def is_toc_url(self, url: str) -> bool:
        return url in self._toc

    # ------------------------------------------------------------------
    # Atomic operations
    # ------------------------------------------------------------------

    async def seed(self, url: str) -> None:
        """Place the crawl root on the queue."""
        async with self._lock:
            if url in self._enqueued:
                return
            self._enqueued.add(url)
            self._queue.put_nowait(FrontierEntry(url, REFERRER_INITIAL_URL))
        logger.debug(f"[SEED] {url}")

    async def try_mark_processed(self, url: str) -> bool:
        """Claim ``url`` for processing. False means another worker got there first."""
        async with self._lock:
            if url in self._processed:
                return False
            self._processed.add(url)
            return True

    async def try_enqueue(self, url: str, referrer: str) -> bool:
        """Queue ``url`` unless it was ever queued before. Returns True if queued."""
        async with self._lock:
            return self._enqueue_locked(url, referrer)

    async def capture_toc(self, urls: Iterable[str]) -> bool:
        """
        Freeze the TOC set from the first non-empty batch of TOC hrefs.

        Each href is normalized (bad ones are logged and dropped) and every
        TOC URL not already queued is enqueued with the TOC sentinel referrer
        before the lock is released. No internal-domain filter is applied
        here; an external TOC entry is rejected later when its landed URL is
        checked.

        Returns True only for the call that actually captured the TOC.
        """
        async with self._lock:
            if self._toc:
                return False

            ordered: List[str] = []
            for raw in urls:
                canonical = self.normalizer.try_normalize(raw)
                if canonical and canonical not in ordered:
                    ordered.append(canonical)
            if not ordered:
                return False

            self._toc = frozenset(ordered)
            queued = 0
            for toc_url in ordered:
                if self._enqueue_locked(toc_url, REFERRER_TOC):
                    queued += 1
                else:
                    logger.debug(f"[TOC] Already enqueued: {toc_url}")

        logger.info(f"[TOC] Captured {len(ordered)} TOC links ({queued} newly enqueued)")
        return True

    def _enqueue_locked(self, url: str, referrer: str) -> bool:
        if self._closed or url in self._enqueued:
            return False
        self._enqueued.add(url)
        self._enqueued_count += 1
        self._queue.put_nowait(FrontierEntry(url, referrer))
        logger.debug(f"[ENQUEUE] {url} (referrer: {referrer})")
        return True

    # ------------------------------------------------------------------
    # Work-queue drain barrier
    # ------------------------------------------------------------------

    async def dequeue(self) -> Optional[FrontierEntry]:
        """Next pending entry in FIFO order, or None once the store is closed.

        Blocks while the queue is empty; the coordinator cancels idle
        workers after ``join()`` returns.
        """
        if self._closed:
            return None
        entry = await self._queue.get()
        if self._closed:
            self._queue.task_done()
            return None
        return entry

    def task_done(self) -> None:
        """Mark a dequeued entry as fully handled."""
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until the queue is empty and no dequeued entry is in flight."""
        await self._queue.join()

    def close(self) -> int:
        """Stop handing out and accepting work. Returns the number of discarded entries."""
        self._closed = True
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.info(f"[FRONTIER] Closed with {dropped} pending entries discarded")
        return dropped
