"""Shared handler helpers: application keys, JSON responses, middlewares."""
import functools
import json
import logging

from aiohttp import web

from downlink.config.settings import Settings
from downlink.services.janitor import CacheJanitor
from downlink.services.log_ring import LogRing
from downlink.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)

SETTINGS_KEY = web.AppKey("settings", Settings)
ORCHESTRATOR_KEY = web.AppKey("orchestrator", FetchOrchestrator)
JANITOR_KEY = web.AppKey("janitor", CacheJanitor)
LOG_RING_KEY = web.AppKey("log_ring", LogRing)

_dumps = functools.partial(json.dumps, default=str)


def json_response(data, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def error_response(status: int, message: str) -> web.Response:
    logger.error("HTTP error response", extra={"status": status, "error": message})
    return json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException as exc:
        if exc.status < 400:
            raise
        return error_response(exc.status, exc.reason)
    except Exception:
        logger.exception("Unexpected error", extra={"method": request.method, "path": request.path})
        return error_response(500, "Internal server error")


@web.middleware
async def preflight_middleware(request: web.Request, handler):
    if request.method != "OPTIONS":
        return await handler(request)
    response = web.Response(status=204)
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = request.headers.get(
        "Access-Control-Request-Headers", "Content-Type"
    )
    return response


async def add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    """on_response_prepare hook; also covers responses streamed by handlers."""
    response.headers["Access-Control-Allow-Origin"] = request.app[SETTINGS_KEY].CORS_ALLOW_ORIGIN
    response.headers["Access-Control-Expose-Headers"] = "X-Cache-Status, Content-Disposition"
