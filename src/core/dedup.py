"""Deduplication cache for already-notified appointments (core domain)."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

from core.config import CacheConfig
from core.models import Appointment

LOGGER = logging.getLogger(__name__)


class DedupCache:
    """Bounded in-memory cache keyed by appointment fingerprint.

    Entries are kept in insertion order, which is also timestamp order, so
    both eviction and expiry only ever look at the front of the dict. All
    access happens on the event loop thread; the sweep task never runs
    concurrently with set() or delete().
    """

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self._config = config
        self._clock = clock
        self._entries: "OrderedDict[str, float]" = OrderedDict()
        self._cleanup_task: Optional[asyncio.Task] = None

    @staticmethod
    def create_key(appointment: Appointment) -> str:
        return f"appointment:{appointment.id}"

    def has(self, key: str) -> bool:
        return key in self._entries

    def set(self, key: str) -> None:
        """Record the key at the current time, evicting the oldest when full."""

        if key in self._entries:
            self._entries.move_to_end(key)
        else:
            while self._entries and len(self._entries) >= self._config.max_size:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("Cache full, evicted %s", evicted)
        self._entries[key] = self._clock()

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def cleanup(self) -> int:
        """Drop entries older than the retention window and return the count."""

        cutoff = self._clock() - self._config.retention
        removed = 0
        while self._entries:
            key, inserted_at = next(iter(self._entries.items()))
            if inserted_at > cutoff:
                break
            del self._entries[key]
            removed += 1
        if removed:
            LOGGER.info("Cache cleanup removed %s entries", removed)
        return removed

    def start_cleanup_interval(self) -> None:
        """Start the periodic sweep on the running loop (no-op if running)."""

        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.cleanup_interval)
            self.cleanup()

    async def stop(self) -> None:
        """Cancel the sweep task if one is running."""

        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
