from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

API_INFO_FILE = Path("api_info.json")


@dataclass(frozen=True)
class ApiCredentials:
    api_id: int
    api_hash: str


def _credentials_from_env() -> ApiCredentials | None:
    from ..settings import load_dotenv_once

    load_dotenv_once()
    raw_id = (os.environ.get("TELEGRAM_API_ID") or "").strip()
    api_hash = (os.environ.get("TELEGRAM_API_HASH") or "").strip()
    if not raw_id or not api_hash:
        return None
    try:
        return ApiCredentials(api_id=int(raw_id), api_hash=api_hash)
    except ValueError:
        return None


def _credentials_from_file(path: Path) -> ApiCredentials | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return ApiCredentials(
            api_id=int(payload["api_id"]), api_hash=str(payload["api_hash"])
        )
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError):
        return None


def load_credentials(path: Path | None = None) -> ApiCredentials | None:
    return _credentials_from_env() or _credentials_from_file(path or API_INFO_FILE)


def save_credentials(credentials: ApiCredentials, path: Path | None = None) -> Path:
    target = path or API_INFO_FILE
    target.write_text(json.dumps(asdict(credentials), indent=2), encoding="utf-8")
    return target
