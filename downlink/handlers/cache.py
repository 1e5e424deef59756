"""
Cache handlers.
- GET    /cache/status → artifact count and total size
- DELETE /cache        → remove every cached artifact
"""
import logging

from aiohttp import web

from downlink.handlers.common import JANITOR_KEY, ORCHESTRATOR_KEY, error_response, json_response
from downlink.services.cache import CacheError

logger = logging.getLogger(__name__)


async def cache_status(request: web.Request) -> web.Response:
    logger.debug("Cache status requested")
    stats = request.app[ORCHESTRATOR_KEY].store.stats()
    return json_response(stats.to_dict())


async def clear_cache(request: web.Request) -> web.Response:
    logger.info("Cache clear requested")
    try:
        result = await request.app[JANITOR_KEY].sweep_async(0)
    except CacheError as exc:
        logger.error("Failed to clear cache", extra={"error": str(exc)})
        return error_response(500, f"Failed to clear cache: {exc}")

    logger.info("Cache cleared successfully", extra={"files_removed": result.removed})
    return json_response({
        "message": "Cache cleared successfully",
        "removed": result.removed,
        "bytes_removed": result.bytes_removed,
    })
