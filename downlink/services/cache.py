"""
Cache service for fetched videos.
- Flat directory of artifacts named <content id>_<quality>.<ext>.
- No index file: the directory listing is the source of truth.
- Degrades to "disabled" when the cache root cannot be created.
"""
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Iterator, Optional

from downlink.services.models import CacheEntry, CacheStats
from downlink.utils.url_parser import extract_content_id, normalize_quality

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".incoming"


class CacheError(Exception):
    pass


def cache_key(url: str, quality: str, extension: str = "mp4") -> str:
    """Deterministic cache key; doubles as the artifact's file name."""
    return f"{extract_content_id(url)}_{normalize_quality(quality)}.{extension}"


class CacheStore:
    """Maps cache keys to artifact paths under a single root directory."""

    def __init__(self, root: Path, extension: str = "mp4"):
        self.extension = extension.lstrip(".")
        self._suffix = f".{self.extension}"
        self.root: Optional[Path] = None
        try:
            root = Path(root)
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create cache directory", extra={"path": str(root), "error": str(exc)})
            logger.warning("Caching disabled due to directory creation failure")
            return
        self.root = root
        logger.info("Cache directory initialized", extra={"path": str(root)})

    @property
    def enabled(self) -> bool:
        return self.root is not None

    def key_for(self, url: str, quality: str) -> str:
        return cache_key(url, quality, self.extension)

    def path_for(self, key: str) -> Optional[Path]:
        if self.root is None:
            return None
        return self.root / key

    def lookup(self, key: str) -> Optional[Path]:
        """Return the artifact path on a hit, None on a miss."""
        path = self.path_for(key)
        if path is None:
            return None
        try:
            st = path.stat()
        except OSError:
            return None
        if not path.is_file() or st.st_size == 0:
            return None
        logger.info("Cache hit", extra={"key": key, "path": str(path)})
        return path

    def register(self, key: str, path: Path) -> Path:
        """
        Make a completed artifact the cached copy for key.

        The artifact is moved with os.replace, so lookups see either the old
        file or the complete new one, never a partial write.
        """
        final = self.path_for(key)
        if final is None:
            raise CacheError("Cache is disabled")
        path = Path(path)
        if path != final:
            os.replace(path, final)
        logger.info(
            "Stored in cache",
            extra={"key": key, "size_kb": final.stat().st_size // 1024},
        )
        return final

    def staging_dir(self) -> Path:
        """Private directory for an in-progress fetch, never listed as an artifact."""
        if self.root is None:
            raise CacheError("Cache is disabled")
        incoming = self.root / STAGING_DIR_NAME
        incoming.mkdir(exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="dl_", dir=incoming))

    def iter_staging(self) -> Iterator[tuple[Path, float]]:
        """Yield (path, mtime) for each staging directory under .incoming."""
        if self.root is None:
            return
        try:
            listing = list((self.root / STAGING_DIR_NAME).iterdir())
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Failed to read staging directory", extra={"path": str(self.root), "error": str(exc)})
            return

        for path in listing:
            try:
                st = path.lstat()
            except OSError:
                continue
            if stat.S_ISDIR(st.st_mode):
                yield path, st.st_mtime

    def iter_entries(self) -> Iterator[CacheEntry]:
        """
        Yield artifacts directly under the cache root.

        Subdirectories and files with other extensions are skipped. Files
        that vanish between listing and stat are skipped too.
        Raises CacheError if the root itself cannot be listed.
        """
        if self.root is None:
            return
        try:
            listing = list(self.root.iterdir())
        except OSError as exc:
            raise CacheError(f"failed to read cache directory: {exc}") from exc

        for path in listing:
            if path.suffix != self._suffix:
                continue
            try:
                st = path.lstat()
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            yield CacheEntry(key=path.name, path=path, size=st.st_size, mtime=st.st_mtime)

    def stats(self) -> CacheStats:
        """
        Count artifacts and sum their sizes.

        Walks the whole cache root on every call, O(number of files).
        """
        if self.root is None:
            return CacheStats(status="disabled")
        try:
            entries = list(self.iter_entries())
        except CacheError as exc:
            logger.error("Failed to read cache directory for stats", extra={"path": str(self.root), "error": str(exc)})
            return CacheStats(status="error")
        return CacheStats(
            status="enabled",
            total_size=sum(e.size for e in entries),
            files=len(entries),
        )
