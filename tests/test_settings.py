import pytest

from downlink.config.settings import Settings


@pytest.mark.parametrize("raw,expected", [
    ("250", 250),
    ("0", 1000),
    ("-4", 1000),
    ("many", 1000),
])
def test_log_buffer_size_fallback(monkeypatch, raw, expected):
    monkeypatch.setenv("LOG_BUFFER_SIZE", raw)
    assert Settings().LOG_BUFFER_SIZE == expected


@pytest.mark.parametrize("raw,expected", [
    ("/d", "/d"),
    ("/d/", "/d"),
    ("api", "/api"),
    ("", ""),
])
def test_api_prefix_normalized(raw, expected):
    assert Settings(API_PREFIX=raw).API_PREFIX == expected


def test_extension_normalized():
    assert Settings(CACHE_EXTENSION=".MP4").CACHE_EXTENSION == "mp4"


def test_durations():
    s = Settings(CACHE_MAX_AGE_HOURS=2, CACHE_SWEEP_INTERVAL_HOURS=0.5)
    assert s.cache_max_age_seconds == 7200
    assert s.sweep_interval_seconds == 1800


def test_does_not_create_cache_dir(tmp_path):
    target = tmp_path / "never"
    Settings(CACHE_DIR=target)
    assert not target.exists()
