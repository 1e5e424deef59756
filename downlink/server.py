"""
aiohttp application factory.
Wires the cache store, janitor, orchestrator and log ring into one app.
"""
import logging
from typing import Optional

from aiohttp import web

from downlink.config.settings import Settings
from downlink.handlers import setup_routes
from downlink.handlers.common import (
    JANITOR_KEY,
    LOG_RING_KEY,
    ORCHESTRATOR_KEY,
    SETTINGS_KEY,
    add_cors_headers,
    error_middleware,
    preflight_middleware,
)
from downlink.services.cache import CacheStore
from downlink.services.janitor import CacheJanitor
from downlink.services.log_ring import LogRing
from downlink.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    ring: LogRing,
    orchestrator: Optional[FetchOrchestrator] = None,
) -> web.Application:
    if orchestrator is None:
        store = CacheStore(settings.CACHE_DIR, settings.CACHE_EXTENSION)
        orchestrator = FetchOrchestrator(store, settings.COOKIES_DIR)

    janitor = CacheJanitor(
        orchestrator.store,
        max_age=settings.cache_max_age_seconds,
        interval=settings.sweep_interval_seconds,
    )

    app = web.Application(middlewares=[error_middleware, preflight_middleware])
    app[SETTINGS_KEY] = settings
    app[LOG_RING_KEY] = ring
    app[ORCHESTRATOR_KEY] = orchestrator
    app[JANITOR_KEY] = janitor

    setup_routes(app, settings.API_PREFIX)
    app.on_response_prepare.append(add_cors_headers)
    app.cleanup_ctx.append(_janitor_ctx)
    return app


async def _janitor_ctx(app: web.Application):
    janitor = app[JANITOR_KEY]
    janitor.start()
    yield
    await janitor.stop()
