from aiohttp import web

from downlink.handlers.cache import cache_status, clear_cache
from downlink.handlers.fetch import fetch_video, health
from downlink.handlers.logs import get_logs


def setup_routes(app: web.Application, prefix: str = "") -> None:
    app.router.add_get(f"{prefix}/", health)
    app.router.add_post(f"{prefix}/fetch", fetch_video)
    app.router.add_post(f"{prefix}/download", fetch_video)
    app.router.add_get(f"{prefix}/cache/status", cache_status)
    app.router.add_delete(f"{prefix}/cache", clear_cache)
    app.router.add_delete(f"{prefix}/cache/delete", clear_cache)
    app.router.add_get(f"{prefix}/logs", get_logs)


__all__ = ["setup_routes"]
