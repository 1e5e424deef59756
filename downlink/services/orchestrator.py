"""
Orchestrator — high-level pipeline:
  URL + quality → cache key → lookup → (miss) fetch → register → FetchResult
"""
import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from downlink.services import downloader
from downlink.services.cache import CacheError, CacheStore
from downlink.services.models import FetchResult
from downlink.utils.url_parser import normalize_quality

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, str, Path, Path], Awaitable[Path]]


class FetchOrchestrator:
    def __init__(
        self,
        store: CacheStore,
        cookies_dir: Path,
        fetcher: Optional[Fetcher] = None,
    ):
        self._store = store
        self._cookies_dir = Path(cookies_dir)
        self._fetcher: Fetcher = fetcher or downloader.download_video
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    async def fetch(self, url: str, quality: str) -> FetchResult:
        """
        Return a playable file for (url, quality).
        Raises downloader.DownloadError when the fetch step fails.
        """
        key = self._store.key_for(url, quality)

        cached = self._store.lookup(key)
        if cached:
            return FetchResult(path=cached, cache_hit=True)

        logger.info("Cache miss, downloading video", extra={"url": url, "quality": quality, "key": key})

        if not self._store.enabled:
            return await self._fetch_uncached(url, quality, key)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_into_cache(url, quality, key))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.info("Joining in-flight download", extra={"key": key})

        try:
            path = await asyncio.shield(task)
        except CacheError as exc:
            logger.warning("Cache unavailable for download, using temporary location", extra={"error": str(exc)})
            return await self._fetch_uncached(url, quality, key)
        return FetchResult(path=path, cache_hit=False)

    def release(self, result: FetchResult) -> None:
        """Remove a temporary (uncached) result once it has been served."""
        if not result.temporary:
            return
        tmp_dir = result.path.parent
        try:
            shutil.rmtree(tmp_dir)
        except OSError as exc:
            logger.error("Failed to clean up temporary directory", extra={"path": str(tmp_dir), "error": str(exc)})
        else:
            logger.info("Temporary directory cleaned up", extra={"path": str(tmp_dir)})

    async def _fetch_into_cache(self, url: str, quality: str, key: str) -> Path:
        try:
            staging = self._store.staging_dir()
        except OSError as exc:
            raise CacheError(f"failed to create staging directory: {exc}") from exc

        try:
            output = await self._run_fetcher(url, quality, staging / key)
            return self._store.register(key, output)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    async def _fetch_uncached(self, url: str, quality: str, key: str) -> FetchResult:
        tmp_dir = Path(tempfile.mkdtemp(prefix="dl_"))
        try:
            output = await self._run_fetcher(url, quality, tmp_dir / key)
        except BaseException:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            raise
        return FetchResult(path=output, cache_hit=False, temporary=True)

    async def _run_fetcher(self, url: str, quality: str, output: Path) -> Path:
        cookies = downloader.cookies_file_for(url, self._cookies_dir)
        return await self._fetcher(url, normalize_quality(quality), output, cookies)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # marks the exception as retrieved when every waiter has gone away
        if not task.cancelled() and task.exception() is not None:
            logger.debug("In-flight download finished with error", extra={"key": key})
