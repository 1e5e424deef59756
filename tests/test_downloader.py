import asyncio
from pathlib import Path

import pytest

from downlink.services import downloader
from downlink.services.downloader import (
    CookieFileMissingError,
    DownloadError,
    cookies_file_for,
    download_video,
    format_selector,
)

YT_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
IG_URL = "https://www.instagram.com/p/Cxyz123/"


class FakeProcess:
    def __init__(self, returncode: int, output: bytes = b"", hang: bool = False):
        self._final_returncode = returncode
        self.returncode = None
        self._output = output
        self._hang = hang
        self.killed = False
        self.reaped = False

    async def wait(self):
        self.reaped = True
        return self.returncode

    async def communicate(self):
        if self._hang:
            await asyncio.sleep(3600)
        self.returncode = self._final_returncode
        return self._output, None

    def kill(self):
        self.killed = True
        self.returncode = -9


@pytest.fixture
def cookies(tmp_path: Path) -> Path:
    path = tmp_path / "youtube.txt"
    path.write_text("# Netscape HTTP Cookie File\n")
    return path


@pytest.fixture
def spawn(monkeypatch):
    """Replace yt-dlp with a FakeProcess; returns the recorded commands."""
    state = {"process": FakeProcess(0), "commands": [], "on_spawn": None}

    async def fake_exec(*cmd, **kwargs):
        state["commands"].append(list(cmd))
        if state["on_spawn"]:
            state["on_spawn"](cmd)
        return state["process"]

    monkeypatch.setattr(downloader.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(downloader.asyncio, "create_subprocess_exec", fake_exec)
    return state


class TestFormatSelector:
    def test_youtube_limits_height(self):
        assert format_selector(YT_URL, "720") == "bestvideo[height<=720]+bestaudio/best[height<=720]"

    def test_instagram_limits_width(self):
        assert format_selector(IG_URL, "1080") == "bestvideo[width<=1080]+bestaudio/best"


class TestCookies:
    def test_instagram(self, tmp_path):
        assert cookies_file_for(IG_URL, tmp_path) == tmp_path / "instagram.txt"

    @pytest.mark.parametrize("url", [YT_URL, "https://vimeo.com/1"])
    def test_default(self, url, tmp_path):
        assert cookies_file_for(url, tmp_path) == tmp_path / "youtube.txt"


class TestDownloadVideo:
    @pytest.mark.asyncio
    async def test_success(self, spawn, cookies, tmp_path):
        output = tmp_path / "out" / "dQw4w9WgXcQ_720.mp4"
        output.parent.mkdir()
        spawn["on_spawn"] = lambda cmd: output.write_bytes(b"merged")

        result = await download_video(YT_URL, "720", output, cookies, ytdlp_path="yt-dlp", merge_format="mp4")

        assert result == output
        cmd = spawn["commands"][0]
        assert cmd[0] == "yt-dlp"
        assert cmd[-1] == YT_URL
        assert cmd[cmd.index("-o") + 1] == str(output)
        assert cmd[cmd.index("--cookies") + 1] == str(cookies)
        assert cmd[cmd.index("--merge-output-format") + 1] == "mp4"

    @pytest.mark.asyncio
    async def test_missing_cookie_file(self, spawn, tmp_path):
        with pytest.raises(CookieFileMissingError):
            await download_video(YT_URL, "720", tmp_path / "o.mp4", tmp_path / "youtube.txt")
        assert spawn["commands"] == []

    @pytest.mark.asyncio
    async def test_missing_binary(self, cookies, tmp_path, monkeypatch):
        monkeypatch.setattr(downloader.shutil, "which", lambda name: None)
        with pytest.raises(DownloadError, match="not found"):
            await download_video(YT_URL, "720", tmp_path / "o.mp4", cookies)

    @pytest.mark.asyncio
    async def test_non_zero_exit_carries_output(self, spawn, cookies, tmp_path):
        spawn["process"] = FakeProcess(1, b"ERROR: Video unavailable")
        with pytest.raises(DownloadError) as excinfo:
            await download_video(YT_URL, "720", tmp_path / "o.mp4", cookies)
        assert "Video unavailable" in str(excinfo.value)
        assert "exit status 1" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_zero_exit_without_file(self, spawn, cookies, tmp_path):
        with pytest.raises(DownloadError, match="not created"):
            await download_video(YT_URL, "720", tmp_path / "o.mp4", cookies)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, spawn, cookies, tmp_path):
        spawn["process"] = FakeProcess(0, hang=True)
        with pytest.raises(DownloadError, match="timed out"):
            await download_video(YT_URL, "720", tmp_path / "o.mp4", cookies, timeout=0.01)
        assert spawn["process"].killed
        assert spawn["process"].reaped

    @pytest.mark.asyncio
    async def test_cancel_kills_and_reaps_process(self, spawn, cookies, tmp_path):
        spawn["process"] = FakeProcess(0, hang=True)
        task = asyncio.create_task(download_video(YT_URL, "720", tmp_path / "o.mp4", cookies))
        for _ in range(10):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert spawn["process"].killed
        assert spawn["process"].reaped
