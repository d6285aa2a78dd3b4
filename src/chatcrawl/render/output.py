from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable

from ..aggregate import AggregateRecord, rank_records

OutputHandler = Callable[[list[dict[str, Any]]], str]

_EXTENSIONS = {"json": "json", "yaml": "yaml"}


def assemble(records: Iterable[AggregateRecord]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in rank_records(records)]


def render_json(entries: list[dict[str, Any]]) -> str:
    return json.dumps(entries, indent=2, ensure_ascii=False)


def render_yaml(entries: list[dict[str, Any]]) -> str:
    import yaml

    return yaml.dump(
        entries,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        Dumper=yaml.SafeDumper,
    )


_HANDLERS: dict[str, OutputHandler] = {
    "json": render_json,
    "yaml": render_yaml,
}


def render_output(entries: list[dict[str, Any]], fmt: str = "json") -> str:
    handler = _HANDLERS.get(fmt)
    if handler is None:
        raise ValueError(f"Unsupported output format: {fmt}")
    return handler(entries)


def output_path(
    conversation: str, fmt: str = "json", directory: str | Path = "."
) -> Path:
    if fmt not in _EXTENSIONS:
        raise ValueError(f"Unsupported output format: {fmt}")
    stem = conversation.strip().lstrip("@")
    if not stem:
        raise ValueError("Conversation identifier is empty")
    separators = {"/", "\\", os.sep, os.altsep} - {None}
    if stem in {".", ".."} or any(sep in stem for sep in separators):
        raise ValueError(
            f"Conversation identifier is not a file name: {conversation!r}"
        )
    return Path(directory) / f"{stem}.{_EXTENSIONS[fmt]}"


def write_output(
    records: Iterable[AggregateRecord],
    conversation: str,
    *,
    fmt: str = "json",
    directory: str | Path = ".",
) -> Path:
    """
    Serialize the ranked records and replace ``<conversation>.<ext>``.

    The text goes to a temporary file beside the target first, so a failed
    write leaves any previous output untouched.
    """
    path = output_path(conversation, fmt, directory)
    text = render_output(assemble(records), fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            delete=False,
            dir=path.parent,
            prefix=f"{path.name}.",
            suffix=".tmp",
        ) as f:
            tmp_name = f.name
            f.write(text)
        Path(tmp_name).replace(path)
    except Exception:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
