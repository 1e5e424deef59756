"""
DownLink backend - Main Entrypoint
Fetches videos with yt-dlp, caches them on disk, and exposes recent logs.
"""
import asyncio
import logging
import sys

from aiohttp import web

from downlink.config.settings import settings
from downlink.server import create_app
from downlink.services.log_ring import LogRing
from downlink.utils.logging import setup_logging


async def main() -> None:
    ring = LogRing(settings.LOG_BUFFER_SIZE)
    setup_logging(ring, settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger = logging.getLogger(__name__)

    logger.info(
        "Logger initialized",
        extra={
            "log_level": settings.LOG_LEVEL,
            "format": settings.LOG_FORMAT,
            "buffer_size": settings.LOG_BUFFER_SIZE,
            "service": "DownLink Backend",
        },
    )

    app = create_app(settings, ring)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.HOST, settings.PORT)
    await site.start()

    logger.info("Starting server", extra={"host": settings.HOST, "port": settings.PORT, "env": settings.ENV})
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        logger.info("Server stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
