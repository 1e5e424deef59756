"""
Fixed-capacity in-memory store of recent log entries.
Overwrites the oldest entry once full. Safe for concurrent add/entries.
"""
import threading
from typing import Optional

from downlink.services.models import LogEntry


class LogRing:
    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("LogRing capacity must be positive")
        self._capacity = capacity
        self._slots: list[Optional[LogEntry]] = [None] * capacity
        self._cursor = 0
        self._count = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def add(self, entry: LogEntry) -> None:
        with self._lock:
            self._slots[self._cursor] = entry
            self._cursor = (self._cursor + 1) % self._capacity
            if self._count < self._capacity:
                self._count += 1

    def entries(self) -> list[LogEntry]:
        """Snapshot of retained entries, oldest first."""
        with self._lock:
            if self._count < self._capacity:
                return list(self._slots[:self._count])  # type: ignore[arg-type]
            # Full: the cursor points at the oldest entry.
            return self._slots[self._cursor:] + self._slots[:self._cursor]  # type: ignore[return-value]
