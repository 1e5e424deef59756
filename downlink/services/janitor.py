"""
Cache janitor.
- Removes artifacts older than a maximum age; max_age=0 clears everything.
- Runs periodically as one background asyncio task; sweeps never overlap.
- Best effort: a file that cannot be removed is logged and skipped.
- Also reclaims staging directories older than the configured max age.
"""
import asyncio
import logging
import shutil
import threading
import time
from typing import Optional

from downlink.services.cache import CacheStore
from downlink.services.models import SweepResult

logger = logging.getLogger(__name__)


class CacheJanitor:
    def __init__(self, store: CacheStore, max_age: float, interval: float):
        self._store = store
        self.max_age = max_age
        self.interval = interval
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    def sweep(self, max_age: float) -> SweepResult:
        """
        Remove artifacts last modified more than max_age seconds ago.

        Raises CacheError only if the cache root cannot be listed.
        """
        with self._lock:
            return self._sweep(max_age)

    def _sweep(self, max_age: float) -> SweepResult:
        if not self._store.enabled:
            logger.debug("Cache cleanup skipped - caching disabled")
            return SweepResult()

        cutoff = time.time() - max_age
        removed = 0
        bytes_removed = 0

        for entry in self._store.iter_entries():
            if max_age > 0 and entry.mtime >= cutoff:
                continue
            try:
                entry.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error(
                    "Failed to remove expired cache file",
                    extra={"path": str(entry.path), "error": str(exc)},
                )
                continue
            removed += 1
            bytes_removed += entry.size
            logger.debug("Removed expired cache file", extra={"path": str(entry.path), "size": entry.size})

        if removed:
            logger.info(
                "Cache cleanup completed",
                extra={"files_removed": removed, "total_size_removed": bytes_removed},
            )
        else:
            logger.debug("Cache cleanup completed - no expired files found")

        self._purge_staging()
        return SweepResult(removed=removed, bytes_removed=bytes_removed)

    def _purge_staging(self) -> int:
        """
        Remove staging directories abandoned by a crashed process.

        Uses the configured max age, never the sweep's, so clearing the
        cache does not pull files out from under running downloads.
        """
        if self.max_age <= 0:
            return 0
        cutoff = time.time() - self.max_age
        purged = 0
        for path, mtime in self._store.iter_staging():
            if mtime >= cutoff:
                continue
            try:
                shutil.rmtree(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error(
                    "Failed to remove stale staging directory",
                    extra={"path": str(path), "error": str(exc)},
                )
                continue
            purged += 1
        if purged:
            logger.info("Removed stale staging directories", extra={"count": purged})
        return purged

    async def sweep_async(self, max_age: float) -> SweepResult:
        return await asyncio.to_thread(self.sweep, max_age)

    async def _tick(self) -> None:
        if self._lock.locked():
            logger.info("Cache sweep still running, skipping this tick")
            return
        await self.sweep_async(self.max_age)

    async def run(self) -> None:
        logger.info(
            "Cache janitor started",
            extra={"interval_s": self.interval, "max_age_s": self.max_age},
        )
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._tick()
            except Exception:
                logger.exception("Cache sweep failed")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="cache-janitor")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache janitor stopped")
