"""
Environment-based configuration using pydantic-settings.
Every value has a safe default; override via environment or a .env file.
"""
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_LOG_BUFFER_SIZE = 1000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Core ────────────────────────────────────────────────────────────────
    ENV: str = "production"
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    API_PREFIX: str = "/d"
    CORS_ALLOW_ORIGIN: str = "*"

    # ── Logging ─────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"              # "json" or "text"
    LOG_BUFFER_SIZE: int = _DEFAULT_LOG_BUFFER_SIZE

    # ── Cache ───────────────────────────────────────────────────────────────
    CACHE_DIR: Path = Path("./cache")
    CACHE_EXTENSION: str = "mp4"
    CACHE_MAX_AGE_HOURS: float = 24
    CACHE_SWEEP_INTERVAL_HOURS: float = 6

    # ── Fetching (yt-dlp) ───────────────────────────────────────────────────
    YTDLP_PATH: str = "yt-dlp"
    COOKIES_DIR: Path = Path(".")
    FETCH_TIMEOUT_SECONDS: int = 900

    @field_validator("LOG_BUFFER_SIZE", mode="before")
    @classmethod
    def fallback_buffer_size(cls, v) -> int:
        try:
            size = int(v)
        except (TypeError, ValueError):
            return _DEFAULT_LOG_BUFFER_SIZE
        return size if size > 0 else _DEFAULT_LOG_BUFFER_SIZE

    @field_validator("API_PREFIX")
    @classmethod
    def strip_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("CACHE_EXTENSION")
    @classmethod
    def strip_extension_dot(cls, v: str) -> str:
        return v.strip().lstrip(".").lower()

    @property
    def cache_max_age_seconds(self) -> float:
        return self.CACHE_MAX_AGE_HOURS * 3600

    @property
    def sweep_interval_seconds(self) -> float:
        return self.CACHE_SWEEP_INTERVAL_HOURS * 3600


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
