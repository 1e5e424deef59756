"""
Severity filtering over retained log entries.
Severity order: DEBUG < INFO < WARN < ERROR.
"""
import logging
from enum import IntEnum
from typing import Iterable, Optional

from downlink.services.models import LogEntry


class Severity(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional["Severity"]:
        """'warn', 'WARNING', 'Error' ... -> Severity; None if unrecognised."""
        if not label:
            return None
        label = label.strip().upper()
        if label == "WARNING":
            label = "WARN"
        return cls.__members__.get(label)

    @classmethod
    def from_levelno(cls, levelno: int) -> "Severity":
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


def filter_entries(
    entries: Iterable[LogEntry],
    min_severity: Severity,
    limit: int = 0,
) -> list[LogEntry]:
    """
    Entries at or above min_severity, in chronological order.

    A positive limit keeps only the most recent `limit` matches. Entries with
    an unrecognised level only pass when min_severity is DEBUG.
    """
    if min_severity == Severity.DEBUG:
        result = list(entries)
    else:
        result = []
        for entry in entries:
            level = Severity.parse(entry.level)
            if level is not None and level >= min_severity:
                result.append(entry)

    if 0 < limit < len(result):
        result = result[-limit:]
    return result
