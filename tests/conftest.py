"""Shared test fixtures and fakes."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from downlink.services.cache import CacheStore


def write_artifact(root: Path, name: str, size: int = 1000, age: float = 0.0) -> Path:
    """Create a file of `size` bytes whose mtime is `age` seconds in the past."""
    path = root / name
    path.write_bytes(b"x" * size)
    if age:
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))
    return path


class FakeFetcher:
    """Stands in for yt-dlp: writes `payload` to the requested output path."""

    def __init__(self, payload: bytes = b"video-bytes", error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, str, Path, Path]] = []
        self.release = None  # optional asyncio.Event gating completion

    async def __call__(self, url: str, quality: str, output_path: Path, cookies_file: Path) -> Path:
        self.calls.append((url, quality, output_path, cookies_file))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            output_path.write_bytes(b"partial")
            raise self.error
        output_path.write_bytes(self.payload)
        return output_path


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def store(cache_root: Path) -> CacheStore:
    return CacheStore(cache_root)


@pytest.fixture
def disabled_store(tmp_path: Path) -> CacheStore:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    return CacheStore(blocker / "cache")


@pytest.fixture
def make_artifact():
    return write_artifact


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
