"""
Log handlers.
- GET /logs?level=<severity>&limit=<n> → most recent retained log entries
"""
import logging

from aiohttp import web

from downlink.handlers.common import LOG_RING_KEY, json_response
from downlink.services.log_filter import Severity, filter_entries

logger = logging.getLogger(__name__)


def _parse_limit(raw: str) -> int:
    try:
        limit = int(raw)
    except ValueError:
        return 0
    return limit if limit > 0 else 0


async def get_logs(request: web.Request) -> web.Response:
    logger.debug("Log retrieval requested", extra={"remote_addr": request.remote})

    level = Severity.parse(request.query.get("level")) or Severity.INFO
    limit = _parse_limit(request.query.get("limit", ""))

    entries = filter_entries(request.app[LOG_RING_KEY].entries(), level, limit)

    logger.debug("Returning logs", extra={"count": len(entries), "level": level.name})
    return json_response({
        "logs": [entry.to_dict() for entry in entries],
        "count": len(entries),
    })
