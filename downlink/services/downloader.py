"""
Downloader service — wraps yt-dlp to fetch and merge video + audio.
Produces exactly one file at the requested output path, or raises.
"""
import asyncio
import logging
import shutil
from pathlib import Path

from downlink.config.settings import settings
from downlink.utils.url_parser import Platform, detect_platform

logger = logging.getLogger(__name__)

_COOKIE_FILES = {
    Platform.INSTAGRAM: "instagram.txt",
}
_DEFAULT_COOKIE_FILE = "youtube.txt"
_OUTPUT_TAIL_CHARS = 2000


class DownloadError(Exception):
    pass


class CookieFileMissingError(DownloadError):
    pass


def format_selector(url: str, quality: str) -> str:
    """yt-dlp format string for a normalized quality such as '720'."""
    if detect_platform(url) is Platform.INSTAGRAM:
        return f"bestvideo[width<={quality}]+bestaudio/best"
    return f"bestvideo[height<={quality}]+bestaudio/best[height<={quality}]"


def cookies_file_for(url: str, cookies_dir: Path) -> Path:
    name = _COOKIE_FILES.get(detect_platform(url), _DEFAULT_COOKIE_FILE)
    return Path(cookies_dir) / name


async def download_video(
    url: str,
    quality: str,
    output_path: Path,
    cookies_file: Path,
    *,
    ytdlp_path: str = settings.YTDLP_PATH,
    merge_format: str = settings.CACHE_EXTENSION,
    timeout: float = settings.FETCH_TIMEOUT_SECONDS,
) -> Path:
    """
    Download url at the given normalized quality into output_path.
    Returns output_path once the merged file exists.
    """
    if not Path(cookies_file).is_file():
        logger.error("Cookie file not found", extra={"path": str(cookies_file)})
        raise CookieFileMissingError(f"cookie file {cookies_file} not found")

    _check_ytdlp(ytdlp_path)

    selector = format_selector(url, quality)
    cmd = [
        ytdlp_path,
        "--no-playlist",
        "--no-progress",
        "--cookies", str(cookies_file),
        "-f", selector,
        "--merge-output-format", merge_format,
        "-o", str(output_path),
        url,
    ]

    logger.info(
        "Starting yt-dlp download",
        extra={
            "url": url,
            "quality": quality,
            "format": selector,
            "cookies": str(cookies_file),
            "output": str(output_path),
        },
    )

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        await _kill(proc)
        raise DownloadError(f"Download timed out after {timeout:.0f}s") from exc
    except asyncio.CancelledError:
        await asyncio.shield(_kill(proc))
        raise

    output = stdout.decode(errors="replace")[-_OUTPUT_TAIL_CHARS:]
    if proc.returncode != 0:
        logger.error(
            "yt-dlp download failed",
            extra={"url": url, "returncode": proc.returncode, "output": output},
        )
        # TODO: stop echoing raw yt-dlp output to clients once errors are classified
        raise DownloadError(
            f"failed to download video and audio: exit status {proc.returncode}\nOutput: {output}"
        )

    logger.info("yt-dlp download completed", extra={"url": url, "output": output})

    if not Path(output_path).is_file():
        logger.error("Output file was not created", extra={"path": str(output_path)})
        raise DownloadError("video file was not created")

    logger.info("Video downloaded successfully", extra={"path": str(output_path)})
    return Path(output_path)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the process if it is still running, then reap it."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


def _check_ytdlp(ytdlp_path: str) -> None:
    if not shutil.which(ytdlp_path):
        raise DownloadError(f"yt-dlp not found at '{ytdlp_path}'")
