from __future__ import annotations

import asyncio
import random
import sys
from datetime import timedelta
from pathlib import Path
from typing import Iterable

from .aggregate import AggregateRecord, Metadata
from .concurrency import run_indexed_tasks_fail_fast
from .errors import DirectoryLookupError
from .source import Directory

_MAX_RETRY_DELAY = 20.0


def _log(message: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(message, file=sys.stderr, flush=True)


def _retry_delay_seconds(attempt: int) -> float:
    base = min(_MAX_RETRY_DELAY, 1.0 * (2 ** max(0, attempt - 1)))
    return base + random.uniform(0.0, 0.35)


def _retry_wait(exc: DirectoryLookupError, attempt: int) -> float:
    if exc.retry_after is not None:
        return max(0.0, float(exc.retry_after))
    return _retry_delay_seconds(attempt)


async def _lookup_with_retries(
    directory: Directory, identifier: str, *, retries: int
) -> Metadata | None:
    max_attempts = 1 + max(0, retries)
    for attempt in range(1, max_attempts + 1):
        try:
            return await directory.lookup(identifier)
        except DirectoryLookupError as exc:
            if not exc.is_transient or attempt >= max_attempts:
                _log(f"  Could not resolve {identifier}: {exc}")
                return None
            wait = _retry_wait(exc, attempt)
            _log(
                f"  Lookup of {identifier} failed ({exc.reason}); retrying in {wait:.1f}s "
                f"(attempt {attempt}/{max_attempts})"
            )
            await asyncio.sleep(wait)
        except Exception as exc:
            _log(f"  Lookup of {identifier} failed ({type(exc).__name__}: {exc})")
            return None
    return None


async def _resolve_record(
    record: AggregateRecord,
    directory: Directory,
    *,
    retries: int,
    use_cache: bool,
    cache_ttl: timedelta | None,
    refresh_cache: bool,
    cache_root: Path | None,
) -> bool:
    from .cache.directory import get_cached_metadata, store_metadata

    identifier = record.reference.identifier
    if use_cache and not refresh_cache:
        try:
            cached = get_cached_metadata(identifier, ttl=cache_ttl, root=cache_root)
        except OSError as exc:
            _log(f"  Lookup cache unreadable for {identifier}: {exc}")
            cached = None
        if cached is not None:
            record.metadata = cached
            return True

    metadata = await _lookup_with_retries(directory, identifier, retries=retries)
    if metadata is None:
        return False
    record.metadata = metadata
    if use_cache:
        try:
            store_metadata(identifier, metadata, root=cache_root)
        except OSError as exc:
            _log(f"  Could not cache {identifier}: {exc}")
    return True


async def resolve(
    records: Iterable[AggregateRecord],
    directory: Directory,
    *,
    jobs: int = 1,
    retries: int = 0,
    use_cache: bool = False,
    cache_ttl: timedelta | None = None,
    refresh_cache: bool = False,
    cache_root: Path | None = None,
) -> list[AggregateRecord]:
    """
    Attach directory metadata to each resolvable record and keep the ones found.

    ``records`` should already be ranked; the returned list keeps that order.
    Invite hashes are never looked up. A failed lookup only drops its own
    record.
    """
    ranked = list(records)
    tasks = [
        (
            index,
            lambda record=record: _resolve_record(
                record,
                directory,
                retries=retries,
                use_cache=use_cache,
                cache_ttl=cache_ttl,
                refresh_cache=refresh_cache,
                cache_root=cache_root,
            ),
        )
        for index, record in enumerate(ranked)
        if record.reference.resolvable
    ]
    outcomes = await run_indexed_tasks_fail_fast(tasks, max_workers=jobs)
    resolved_count = sum(1 for _, found in outcomes if found)
    _log(f"  Resolved {resolved_count} of {len(tasks)} lookups")

    return [
        record
        for record in ranked
        if record.reference.resolvable and record.metadata is not None
    ]
