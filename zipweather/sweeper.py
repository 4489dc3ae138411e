"""
Periodic eviction of expired cache rows.
"""

import asyncio
import logging
from typing import Dict, Optional

from zipweather.cache import WeatherCaches

logger = logging.getLogger(__name__)


class CacheSweeper:
    """
    Deletes rows older than their table's TTL on a fixed interval.

    Runs as an asyncio task between start() and stop().
    """

    def __init__(self, caches: WeatherCaches, interval: float = 60):
        """
        Initialize sweeper.

        Args:
            caches: Caches to sweep
            interval: Seconds between sweeps
        """
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.caches = caches
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> Dict[str, int]:
        """
        Run one eviction pass over all caches.

        Returns:
            Rows deleted per table
        """
        deleted = {}
        for name, cache in self.caches.all().items():
            deleted[name] = cache.clear_expired()

        if any(deleted.values()):
            logger.info("Evicted expired cache rows: %s", deleted)
        return deleted

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")

    def start(self):
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Cache sweeper started (every %ss)", self.interval)

    async def stop(self):
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache sweeper stopped")
