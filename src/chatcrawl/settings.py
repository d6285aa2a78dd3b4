from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any

from .cache.directory import DEFAULT_TTL, parse_duration
from .runtime import clamp_jobs, get_resolve_jobs

_VALID_FORMATS = frozenset({"json", "yaml"})
DEFAULT_SESSION = "crawler.session"


@lru_cache(maxsize=1)
def load_dotenv_once() -> None:
    from dotenv import find_dotenv, load_dotenv

    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


@dataclass(frozen=True)
class CrawlSettings:
    format: str = "json"
    output_dir: Path = Path(".")
    resolve_jobs: int = 4
    resolve_retries: int = 0
    use_cache: bool = False
    cache_ttl: timedelta = DEFAULT_TTL
    refresh_cache: bool = False
    message_limit: int | None = None
    session: str = DEFAULT_SESSION


def _parse_switch(value: str, *, default: bool) -> bool:
    cleaned = value.strip().lower()
    if cleaned in {"1", "true", "yes", "on"}:
        return True
    if cleaned in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_optional_int(value: str) -> int | None:
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        parsed = int(cleaned)
    except ValueError:
        return None
    if parsed < 0:
        return None
    return parsed


def _parse_ttl(value: str, *, default: timedelta) -> timedelta:
    if not value.strip():
        return default
    try:
        return parse_duration(value)
    except ValueError:
        return default


def _crawl_settings_from_env() -> CrawlSettings:
    load_dotenv_once()

    raw_format = (os.environ.get("CHATCRAWL_FORMAT") or "json").strip().lower()
    out_format = raw_format if raw_format in _VALID_FORMATS else "json"

    retries = _parse_optional_int(os.environ.get("CHATCRAWL_RESOLVE_RETRIES", ""))
    output_dir = (os.environ.get("CHATCRAWL_OUTPUT_DIR") or ".").strip() or "."
    session = (os.environ.get("CHATCRAWL_SESSION") or DEFAULT_SESSION).strip()

    return CrawlSettings(
        format=out_format,
        output_dir=Path(os.path.expanduser(output_dir)),
        resolve_jobs=get_resolve_jobs(),
        resolve_retries=retries or 0,
        use_cache=_parse_switch(
            os.environ.get("CHATCRAWL_USE_CACHE", ""), default=False
        ),
        cache_ttl=_parse_ttl(
            os.environ.get("CHATCRAWL_CACHE_TTL", ""), default=DEFAULT_TTL
        ),
        session=session or DEFAULT_SESSION,
    )


def build_crawl_settings(overrides: dict[str, Any] | None = None) -> CrawlSettings:
    """
    Merge explicit overrides (usually CLI flags) over environment settings.

    ``None`` values in ``overrides`` are ignored. Invalid explicit values raise
    ``ValueError``; invalid environment values fall back to defaults.
    """
    env = _crawl_settings_from_env()
    if not overrides:
        return env
    values = {key: value for key, value in overrides.items() if value is not None}

    format_value = str(values.get("format", env.format)).strip().lower()
    if format_value not in _VALID_FORMATS:
        raise ValueError(f"format must be one of: {', '.join(sorted(_VALID_FORMATS))}")

    jobs = int(values.get("resolve_jobs", env.resolve_jobs))
    if jobs <= 0:
        raise ValueError("resolve_jobs must be positive")

    retries = int(values.get("resolve_retries", env.resolve_retries))
    if retries < 0:
        raise ValueError("resolve_retries cannot be negative")

    cache_ttl = values.get("cache_ttl", env.cache_ttl)
    if isinstance(cache_ttl, str):
        cache_ttl = parse_duration(cache_ttl)
    if not isinstance(cache_ttl, timedelta):
        raise ValueError("cache_ttl must be a duration")

    message_limit = values.get("message_limit", env.message_limit)
    if message_limit is not None and int(message_limit) <= 0:
        raise ValueError("message_limit must be positive")

    return CrawlSettings(
        format=format_value,
        output_dir=Path(values.get("output_dir", env.output_dir)),
        resolve_jobs=clamp_jobs(jobs),
        resolve_retries=retries,
        use_cache=bool(values.get("use_cache", env.use_cache)),
        cache_ttl=cache_ttl,
        refresh_cache=bool(values.get("refresh_cache", env.refresh_cache)),
        message_limit=int(message_limit) if message_limit is not None else None,
        session=str(values.get("session", env.session)),
    )
