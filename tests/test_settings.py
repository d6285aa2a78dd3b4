from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from chatcrawl import settings as settings_module
from chatcrawl.cache.directory import parse_duration
from chatcrawl.runtime import clamp_jobs, get_resolve_jobs
from chatcrawl.settings import build_crawl_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.setattr(settings_module, "load_dotenv_once", lambda: None)
    for name in (
        "CHATCRAWL_FORMAT",
        "CHATCRAWL_OUTPUT_DIR",
        "CHATCRAWL_RESOLVE_JOBS",
        "CHATCRAWL_RESOLVE_RETRIES",
        "CHATCRAWL_CACHE_TTL",
        "CHATCRAWL_USE_CACHE",
        "CHATCRAWL_SESSION",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = build_crawl_settings()
    assert settings.format == "json"
    assert settings.output_dir == Path(".")
    assert settings.resolve_jobs == 4
    assert settings.resolve_retries == 0
    assert settings.use_cache is False
    assert settings.cache_ttl == timedelta(days=3)
    assert settings.message_limit is None
    assert settings.session == "crawler.session"


def test_environment_values(monkeypatch) -> None:
    monkeypatch.setenv("CHATCRAWL_FORMAT", "YAML")
    monkeypatch.setenv("CHATCRAWL_RESOLVE_JOBS", "500")
    monkeypatch.setenv("CHATCRAWL_RESOLVE_RETRIES", "2")
    monkeypatch.setenv("CHATCRAWL_CACHE_TTL", "1d6h")
    monkeypatch.setenv("CHATCRAWL_SESSION", "other.session")

    settings = build_crawl_settings()
    assert settings.format == "yaml"
    assert settings.resolve_jobs == 64
    assert settings.resolve_retries == 2
    assert settings.cache_ttl == timedelta(days=1, hours=6)
    assert settings.session == "other.session"


def test_invalid_environment_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("CHATCRAWL_FORMAT", "xml")
    monkeypatch.setenv("CHATCRAWL_RESOLVE_JOBS", "many")
    monkeypatch.setenv("CHATCRAWL_RESOLVE_RETRIES", "-3")
    monkeypatch.setenv("CHATCRAWL_CACHE_TTL", "soon")
    monkeypatch.setenv("CHATCRAWL_USE_CACHE", "maybe")

    settings = build_crawl_settings()
    assert settings.format == "json"
    assert settings.resolve_jobs == 4
    assert settings.resolve_retries == 0
    assert settings.cache_ttl == timedelta(days=3)
    assert settings.use_cache is False


def test_overrides_win_and_none_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("CHATCRAWL_RESOLVE_RETRIES", "2")
    settings = build_crawl_settings(
        {
            "format": "yaml",
            "resolve_jobs": 8,
            "resolve_retries": None,
            "use_cache": True,
            "cache_ttl": "12h",
            "message_limit": 100,
            "output_dir": "out",
        }
    )
    assert settings.format == "yaml"
    assert settings.resolve_jobs == 8
    assert settings.resolve_retries == 2
    assert settings.use_cache is True
    assert settings.cache_ttl == timedelta(hours=12)
    assert settings.message_limit == 100
    assert settings.output_dir == Path("out")


@pytest.mark.parametrize(
    "overrides",
    [
        {"format": "xml"},
        {"resolve_jobs": 0},
        {"resolve_retries": -1},
        {"message_limit": 0},
        {"cache_ttl": "whenever"},
    ],
)
def test_invalid_overrides_raise(overrides) -> None:
    with pytest.raises(ValueError):
        build_crawl_settings(overrides)


def test_parse_duration() -> None:
    assert parse_duration("0") == timedelta(0)
    assert parse_duration("90") == timedelta(seconds=90)
    assert parse_duration("2w") == timedelta(weeks=2)
    assert parse_duration("1d 6h 30m") == timedelta(days=1, hours=6, minutes=30)
    with pytest.raises(ValueError):
        parse_duration("3 fortnights")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("yes", True), ("ON", True), ("0", False), ("off", False), ("", False)],
)
def test_cache_is_enabled_from_environment(monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("CHATCRAWL_USE_CACHE", raw)
    assert build_crawl_settings().use_cache is expected


def test_cache_override_beats_environment(monkeypatch) -> None:
    monkeypatch.setenv("CHATCRAWL_USE_CACHE", "1")
    assert build_crawl_settings({"use_cache": False}).use_cache is False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", 4), ("0", 4), ("-2", 4), ("many", 4), (" 8 ", 8), ("500", 64)],
)
def test_resolve_jobs_from_environment(monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("CHATCRAWL_RESOLVE_JOBS", raw)
    assert get_resolve_jobs() == expected


def test_clamp_jobs() -> None:
    assert clamp_jobs(0) == 1
    assert clamp_jobs(12) == 12
    assert clamp_jobs(1000) == 64
