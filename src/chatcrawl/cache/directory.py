from __future__ import annotations

import hashlib
import json
import os
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..aggregate import Metadata

DIRECTORY_CACHE_ROOT = Path(
    os.environ.get(
        "CHATCRAWL_CACHE",
        os.path.expanduser("~/.local/share/chatcrawl/cache/directory/v1"),
    )
)
DEFAULT_TTL = timedelta(days=3)
CACHE_VERSION = 1

_DURATION_TOKEN_RE = re.compile(r"(\d+)\s*(w|d|h|m|s)")
_DURATION_UNITS = {
    "w": timedelta(weeks=1),
    "d": timedelta(days=1),
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
}


@dataclass
class DirectoryCacheMetadata:
    identity: str
    cached_at: str
    cache_version: int = CACHE_VERSION


def parse_duration(s: str) -> timedelta:
    """Parse ``90``, ``12h`` or compound forms like ``1d6h`` into a timedelta."""
    if not s or s.strip() == "0":
        return timedelta(0)

    s = s.strip().lower()
    if s.isdigit():
        return timedelta(seconds=int(s))

    total = timedelta(0)
    position = 0
    for match in _DURATION_TOKEN_RE.finditer(s):
        if s[position : match.start()].strip():
            raise ValueError(f"Invalid duration format: {s!r}")
        total += int(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or s[position:].strip():
        raise ValueError(f"Invalid duration format: {s!r}")
    return total


def _cache_key(identity: str) -> str:
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()


def _cache_paths(root: Path, identity: str) -> tuple[Path, Path]:
    key = _cache_key(identity)
    content = root / f"{key}.json"
    meta = root / f"{key}.meta.json"
    return content, meta


def _load_meta(path: Path) -> DirectoryCacheMetadata | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    try:
        return DirectoryCacheMetadata(**payload)
    except TypeError:
        return None


def _is_expired(meta: DirectoryCacheMetadata, ttl: timedelta) -> bool:
    if ttl == timedelta(0):
        return True
    if meta.cache_version != CACHE_VERSION:
        return True
    try:
        cached_at = datetime.fromisoformat(meta.cached_at.replace("Z", "+00:00"))
    except ValueError:
        return True
    now = datetime.now(timezone.utc)
    return (now - cached_at) > ttl


def get_cached_metadata(
    identifier: str,
    ttl: timedelta | None = None,
    *,
    root: Path | None = None,
) -> Metadata | None:
    effective_ttl = DEFAULT_TTL if ttl is None else ttl
    identity = identifier.lower()
    content_path, meta_path = _cache_paths(root or DIRECTORY_CACHE_ROOT, identity)
    if not content_path.exists():
        return None
    meta = _load_meta(meta_path)
    if meta is None or _is_expired(meta, effective_ttl):
        return None
    try:
        payload = json.loads(content_path.read_text(encoding="utf-8"))
        return Metadata(name=payload["name"], kind=payload["type"])
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError):
        return None


def store_metadata(
    identifier: str,
    metadata: Metadata,
    *,
    root: Path | None = None,
) -> None:
    cache_root = root or DIRECTORY_CACHE_ROOT
    cache_root.mkdir(parents=True, exist_ok=True)
    identity = identifier.lower()
    content_path, meta_path = _cache_paths(cache_root, identity)
    content_path.write_text(
        json.dumps(metadata.to_dict(), ensure_ascii=False), encoding="utf-8"
    )
    meta = DirectoryCacheMetadata(
        identity=identity,
        cached_at=datetime.now(timezone.utc).isoformat(),
    )
    meta_path.write_text(json.dumps(asdict(meta), indent=2), encoding="utf-8")
