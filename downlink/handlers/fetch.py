"""
Fetch handlers.
- GET  /          → health check
- POST /fetch     → stream the requested video, from cache when possible
"""
import json
import logging
import os
import uuid
from typing import BinaryIO

from aiohttp import web

from downlink.handlers.common import ORCHESTRATOR_KEY, error_response
from downlink.services.downloader import DownloadError
from downlink.services.models import FetchResult
from downlink.services.orchestrator import FetchOrchestrator
from downlink.utils.url_parser import (
    QualityValidationError,
    URLValidationError,
    validate_quality,
    validate_url,
)

logger = logging.getLogger(__name__)

_MIME_TYPES = {"mp4": "video/mp4", "webm": "video/webm", "mkv": "video/x-matroska"}
_CHUNK_SIZE = 256 * 1024


async def health(request: web.Request) -> web.Response:
    logger.debug("Health check requested", extra={"remote_addr": request.remote})
    return web.Response(text="Backend for DownLink is running.\n")


async def fetch_video(request: web.Request) -> web.StreamResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error("Failed to decode request body", extra={"error": str(exc)})
        return error_response(400, "Invalid JSON")
    if not isinstance(body, dict):
        return error_response(400, "Invalid JSON")

    raw_url = body.get("url") or ""
    raw_quality = body.get("quality") or ""
    if not raw_url or not raw_quality:
        logger.warning("Invalid request parameters", extra={"url": raw_url, "quality": raw_quality})
        return error_response(400, "URL and Quality are required")

    try:
        url = validate_url(raw_url)
        quality = validate_quality(raw_quality)
    except (URLValidationError, QualityValidationError) as exc:
        return error_response(400, str(exc))

    orchestrator = request.app[ORCHESTRATOR_KEY]
    logger.info("Starting video download", extra={"url": url, "quality": quality})

    try:
        result, fh = await _fetch_and_open(orchestrator, url, quality)
    except DownloadError as exc:
        logger.error("Video download failed", extra={"url": url, "quality": quality, "error": str(exc)})
        return error_response(500, str(exc))

    extension = result.path.suffix.lstrip(".") or orchestrator.store.extension
    headers = {
        "X-Cache-Status": "HIT" if result.cache_hit else "MISS",
        "Content-Disposition": f"attachment; filename=video_{uuid.uuid4()}.{extension}",
        "Content-Type": _MIME_TYPES.get(extension, "application/octet-stream"),
    }
    logger.info(
        "Serving cached video" if result.cache_hit else "Serving fresh download",
        extra={"url": url, "quality": quality, "path": str(result.path)},
    )

    try:
        with fh:
            return await _stream_file(request, fh, headers)
    finally:
        orchestrator.release(result)


async def _fetch_and_open(
    orchestrator: FetchOrchestrator, url: str, quality: str
) -> tuple[FetchResult, BinaryIO]:
    """
    Fetch and open the result. The open handle stays readable even if a
    sweep unlinks the file while it is being sent.
    """
    result = await orchestrator.fetch(url, quality)
    try:
        return result, result.path.open("rb")
    except FileNotFoundError:
        if not result.cache_hit:
            orchestrator.release(result)
            raise
        logger.warning("Cached video removed before it could be served, fetching again", extra={"path": str(result.path)})

    result = await orchestrator.fetch(url, quality)
    try:
        return result, result.path.open("rb")
    except OSError:
        orchestrator.release(result)
        raise


async def _stream_file(request: web.Request, fh: BinaryIO, headers: dict) -> web.StreamResponse:
    """Send an open file fully before returning, so the caller may delete it."""
    response = web.StreamResponse(headers=headers)
    response.content_length = os.fstat(fh.fileno()).st_size
    await response.prepare(request)
    try:
        while True:
            chunk = fh.read(_CHUNK_SIZE)
            if not chunk:
                break
            await response.write(chunk)
        await response.write_eof()
    except ConnectionResetError:
        logger.info("Client disconnected during download", extra={"remote_addr": request.remote})
    return response
