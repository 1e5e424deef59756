from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class CacheEntry:
    key: str
    path: Path
    size: int
    mtime: float


@dataclass(frozen=True)
class CacheStats:
    status: str
    total_size: int = 0
    files: int = 0

    def to_dict(self) -> dict:
        return {"status": self.status, "total_size": self.total_size, "files": self.files}


@dataclass(frozen=True)
class SweepResult:
    removed: int = 0
    bytes_removed: int = 0


@dataclass(frozen=True)
class FetchResult:
    path: Path
    cache_hit: bool
    temporary: bool = False


@dataclass(frozen=True)
class LogEntry:
    time: datetime
    level: str
    message: str
    attrs: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "time": self.time.isoformat(),
            "level": self.level,
            "msg": self.message,
        }
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        return data
