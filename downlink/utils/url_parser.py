"""
URL validation, source detection, and content-id extraction.
Defends against SSRF and malformed input before anything touches the cache.
"""
import hashlib
import re
from enum import Enum
from typing import Optional
from urllib.parse import urlparse, parse_qs


class Platform(str, Enum):
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    OTHER = "other"


# ── Known source hosts ──────────────────────────────────────────────────────
_YOUTUBE_HOSTS = frozenset({
    "www.youtube.com",
    "youtube.com",
    "youtu.be",
    "m.youtube.com",
    "music.youtube.com",
})
_INSTAGRAM_HOSTS = frozenset({"www.instagram.com", "instagram.com"})

# ── Regex patterns for ID extraction (matched against the URL path only) ────
_YOUTUBE_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")
_YOUTU_BE_PATH_RE = re.compile(r"^/([A-Za-z0-9_-]{11})")
_YOUTUBE_PATH_RE = re.compile(r"^/(?:embed|shorts)/([A-Za-z0-9_-]{11})")
_INSTAGRAM_PATH_RE = re.compile(r"^/(?:p|reel)/([A-Za-z0-9_-]+)")
_QUALITY_RE = re.compile(r"^(\d{2,4})[pP]?$")

# ── Private / loopback ranges to block (SSRF) ────────────────────────────────
_PRIVATE_HOST_RE = re.compile(
    r"^(localhost|127\.|10\.|192\.168\.|172\.(1[6-9]|2[0-9]|3[01])\.|::1|0\.0\.0\.0)"
)

_FALLBACK_HASH_CHARS = 16


class URLValidationError(ValueError):
    pass


class QualityValidationError(ValueError):
    pass


def detect_platform(url: str) -> Platform:
    """Return the Platform a URL belongs to; unknown hosts are OTHER."""
    parsed = _safe_parse(url)
    if parsed is None:
        return Platform.OTHER
    host = (parsed.hostname or "").lower()
    if host in _YOUTUBE_HOSTS:
        return Platform.YOUTUBE
    if host in _INSTAGRAM_HOSTS:
        return Platform.INSTAGRAM
    return Platform.OTHER


def validate_url(url: str) -> str:
    """
    Validate and sanitise a URL.
    Returns the cleaned URL or raises URLValidationError.
    """
    if not isinstance(url, str):
        raise URLValidationError("URL must be a string")

    url = url.strip()
    if not url:
        raise URLValidationError("URL is required")
    if len(url) > 2048:
        raise URLValidationError("URL too long")

    parsed = _safe_parse(url)
    if parsed is None:
        raise URLValidationError("Malformed URL")

    if parsed.scheme not in ("http", "https"):
        raise URLValidationError("Only http/https URLs are accepted")

    host = parsed.hostname or ""
    if _PRIVATE_HOST_RE.match(host):
        raise URLValidationError("Private/loopback addresses are not allowed")

    return url


def validate_quality(quality: str) -> str:
    """Check a quality label such as '720p' or '1080'. Returns it stripped."""
    if not isinstance(quality, str):
        raise QualityValidationError("Quality must be a string")
    quality = quality.strip()
    if not quality:
        raise QualityValidationError("Quality is required")
    if not _QUALITY_RE.match(quality):
        raise QualityValidationError(f"Unsupported quality '{quality[:16]}'")
    return quality


def normalize_quality(quality: str) -> str:
    """'720p' -> '720'. Equivalent labels collapse to one value."""
    return quality.strip().lower().removesuffix("p")


def extract_youtube_video_id(url: str) -> Optional[str]:
    """
    Extract a YouTube video ID from a URL (youtu.be, watch?v=, embed, shorts).
    Only YouTube hosts are considered; an id embedded elsewhere in a foreign
    URL is ignored.
    """
    parsed = _safe_parse(url)
    if parsed is None:
        return None
    host = (parsed.hostname or "").lower()
    if host not in _YOUTUBE_HOSTS:
        return None

    if host == "youtu.be":
        match = _YOUTU_BE_PATH_RE.match(parsed.path)
        return match.group(1) if match else None

    if parsed.path == "/watch":
        vids = parse_qs(parsed.query).get("v")
        if vids and _YOUTUBE_ID_RE.fullmatch(vids[0]):
            return vids[0]
        return None

    match = _YOUTUBE_PATH_RE.match(parsed.path)
    return match.group(1) if match else None


def extract_instagram_post_id(url: str) -> Optional[str]:
    parsed = _safe_parse(url)
    if parsed is None or (parsed.hostname or "").lower() not in _INSTAGRAM_HOSTS:
        return None
    match = _INSTAGRAM_PATH_RE.match(parsed.path)
    return match.group(1) if match else None


def extract_content_id(url: str) -> str:
    """
    Content identifier used in cache keys.

    Known sources yield their own id; anything else falls back to a
    fixed-width hash of the full URL, so different URLs never share an id
    merely because they have the same length.
    """
    content_id = extract_youtube_video_id(url) or extract_instagram_post_id(url)
    if content_id:
        return content_id
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return f"hash_{digest[:_FALLBACK_HASH_CHARS]}"


def _safe_parse(url: str):
    try:
        parsed = urlparse(url)
        if not parsed.netloc:
            return None
        return parsed
    except ValueError:
        return None
