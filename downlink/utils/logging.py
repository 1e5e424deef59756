"""
Structured logging.
Every record goes to two independent sinks: stdout (JSON lines or
human-readable text) and the in-memory LogRing behind the /logs endpoint.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import json_log_formatter

from downlink.services.log_filter import Severity
from downlink.services.log_ring import LogRing
from downlink.services.models import LogEntry

# LogRecord attributes that are not user-supplied `extra` fields
_RECORD_ATTRS = frozenset({
    "args", "asctime", "created", "exc_info", "exc_text",
    "filename", "funcName", "id", "levelname", "levelno",
    "lineno", "module", "msecs", "message", "msg", "name",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "taskName", "thread", "threadName",
})


class JsonFormatter(json_log_formatter.JSONFormatter):
    """JSON lines with level and logger name alongside the extra fields."""

    def json_record(self, message: str, extra: dict[str, Any], record: logging.LogRecord) -> dict[str, Any]:
        extra = super().json_record(message, extra, record)
        extra["level"] = Severity.from_levelno(record.levelno).name
        extra["logger"] = record.name
        return extra


class RingHandler(logging.Handler):
    """Mirrors each record into a LogRing as an immutable LogEntry."""

    def __init__(self, ring: LogRing, level: int = logging.NOTSET):
        super().__init__(level)
        self.ring = ring

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.ring.add(record_to_entry(record))
        except Exception:
            self.handleError(record)


def record_to_entry(record: logging.LogRecord) -> LogEntry:
    attrs = {
        key: val for key, val in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    if record.exc_info and record.exc_info[1] is not None:
        attrs["error"] = repr(record.exc_info[1])
    return LogEntry(
        time=datetime.fromtimestamp(record.created, tz=timezone.utc),
        level=Severity.from_levelno(record.levelno).name,
        message=record.getMessage(),
        attrs=attrs,
    )


def parse_level(level: str) -> int:
    severity = Severity.parse(level)
    return int(severity) if severity is not None else logging.INFO


def setup_logging(ring: LogRing, level: str = "INFO", fmt: str = "json") -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(level))

    stream = logging.StreamHandler(sys.stdout)
    if fmt.lower() == "text":
        stream.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    else:
        stream.setFormatter(JsonFormatter())

    root_logger.handlers.clear()
    root_logger.addHandler(stream)
    root_logger.addHandler(RingHandler(ring))

    # Quiet noisy libraries
    for lib in ("aiohttp.access", "asyncio"):
        logging.getLogger(lib).setLevel(logging.WARNING)
