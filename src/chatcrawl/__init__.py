from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .aggregate import AggregateRecord
    from .settings import CrawlSettings
    from .source import ChatMessage, Directory, MessageSource


@dataclass(frozen=True)
class CrawlReport:
    found: int
    resolved: list[AggregateRecord]
    messages_visited: int
    output_path: Path


async def crawl_conversation(
    conversation: str,
    handle: object,
    source: MessageSource,
    directory: Directory,
    *,
    settings: CrawlSettings | None = None,
    on_message: Callable[[ChatMessage, int], None] | None = None,
    on_crawled: Callable[[int, int], None] | None = None,
) -> CrawlReport:
    """
    Crawl ``handle``, resolve the references found and write the ranked list.

    ``conversation`` names the output file. ``on_crawled`` receives the number
    of distinct references and visited messages once the crawl finishes.
    """
    from .aggregate import rank_records
    from .crawl import crawl
    from .render.output import write_output
    from .resolve import resolve
    from .settings import build_crawl_settings

    settings = settings or build_crawl_settings()
    crawled = await crawl(
        handle, source, limit=settings.message_limit, on_message=on_message
    )
    if on_crawled is not None:
        on_crawled(len(crawled.records), crawled.messages_visited)

    resolved = await resolve(
        rank_records(crawled.records),
        directory,
        jobs=settings.resolve_jobs,
        retries=settings.resolve_retries,
        use_cache=settings.use_cache,
        cache_ttl=settings.cache_ttl,
        refresh_cache=settings.refresh_cache,
    )
    path = write_output(
        resolved,
        conversation,
        fmt=settings.format,
        directory=settings.output_dir,
    )
    return CrawlReport(
        found=len(crawled.records),
        resolved=resolved,
        messages_visited=crawled.messages_visited,
        output_path=path,
    )
