from downlink.utils.url_parser import (
    Platform,
    QualityValidationError,
    URLValidationError,
    detect_platform,
    validate_quality,
    validate_url,
)
from downlink.utils.logging import setup_logging

__all__ = [
    "Platform",
    "QualityValidationError",
    "URLValidationError",
    "detect_platform",
    "validate_quality",
    "validate_url",
    "setup_logging",
]
