import pytest

from downlink.services.cache import cache_key


@pytest.mark.parametrize("url,quality,expected", [
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "720p", "dQw4w9WgXcQ_720.mp4"),
    ("https://youtu.be/dQw4w9WgXcQ", "720", "dQw4w9WgXcQ_720.mp4"),
    ("https://www.instagram.com/p/Cxyz123/", "1080p", "Cxyz123_1080.mp4"),
])
def test_known_sources(url, quality, expected):
    assert cache_key(url, quality) == expected


def test_is_deterministic():
    url = "https://vimeo.com/76979871"
    assert cache_key(url, "480p") == cache_key(url, "480p")


def test_equivalent_quality_labels_collapse():
    url = "https://youtu.be/dQw4w9WgXcQ"
    assert cache_key(url, "720p") == cache_key(url, "720")


def test_different_content_different_keys():
    assert cache_key("https://youtu.be/aaaaaaaaaaa", "720p") != cache_key("https://youtu.be/bbbbbbbbbbb", "720p")


@pytest.mark.parametrize("foreign", [
    "https://evil.example.com/clip?next=youtube.com/watch?v=dQw4w9WgXcQ",
    "https://evil.example.com/youtu.be/dQw4w9WgXcQ",
])
def test_foreign_host_cannot_claim_youtube_key(foreign):
    real = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert cache_key(foreign, "720p") != cache_key(real, "720p")
    assert cache_key(foreign, "720p").startswith("hash_")


def test_foreign_host_cannot_claim_instagram_key():
    real = cache_key("https://www.instagram.com/p/Cxyz123/", "720p")
    assert cache_key("https://notinstagram.com/p/Cxyz123/", "720p") != real


def test_fallback_key_shape():
    key = cache_key("https://vimeo.com/76979871", "480p", "webm")
    assert key.startswith("hash_")
    assert key.endswith("_480.webm")
