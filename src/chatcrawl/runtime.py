from __future__ import annotations

from contextvars import ContextVar, Token
import os

_VERBOSE_LOGGING: ContextVar[bool] = ContextVar(
    "chatcrawl_verbose_logging", default=False
)

_DEFAULT_RESOLVE_JOBS = 4
_MAX_RESOLVE_JOBS = 64


def get_verbose_logging() -> bool:
    return _VERBOSE_LOGGING.get()


def set_verbose_logging(enabled: bool) -> Token[bool]:
    return _VERBOSE_LOGGING.set(bool(enabled))


def reset_verbose_logging(token: Token[bool]) -> None:
    _VERBOSE_LOGGING.reset(token)


def clamp_jobs(value: int) -> int:
    return max(1, min(int(value), _MAX_RESOLVE_JOBS))


def get_resolve_jobs() -> int:
    """Lookup concurrency from ``CHATCRAWL_RESOLVE_JOBS``, capped at 64."""
    raw = (os.environ.get("CHATCRAWL_RESOLVE_JOBS") or "").strip()
    try:
        value = int(raw)
    except ValueError:
        return _DEFAULT_RESOLVE_JOBS
    if value <= 0:
        return _DEFAULT_RESOLVE_JOBS
    return clamp_jobs(value)
