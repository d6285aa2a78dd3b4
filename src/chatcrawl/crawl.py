from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable

from .aggregate import AggregateRecord, Aggregator
from .errors import CrawlError
from .references import classify_link, classify_mention
from .source import MENTION_KIND, ChatMessage, MessageSource


@dataclass(frozen=True)
class CrawlResult:
    records: list[AggregateRecord]
    messages_visited: int


def _log(message: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(message, file=sys.stderr, flush=True)


def extract_references(message: ChatMessage, aggregator: Aggregator) -> int:
    """Record every reference carried by ``message``; return how many."""
    found = 0
    link = classify_link(message.text)
    if link is not None:
        aggregator.record(link)
        found += 1
    for span in message.mentions:
        if span.kind != MENTION_KIND:
            continue
        aggregator.record(classify_mention(message.text, span.offset, span.length))
        found += 1
    return found


async def crawl(
    handle: object,
    source: MessageSource,
    *,
    limit: int | None = None,
    on_message: Callable[[ChatMessage, int], None] | None = None,
) -> CrawlResult:
    aggregator = Aggregator()
    visited = 0
    messages = source.iter_messages(handle, limit=limit)
    while True:
        try:
            message = await anext(messages)
        except StopAsyncIteration:
            break
        except Exception as exc:
            _log(
                f"  Message fetch failed ({type(exc).__name__}) "
                f"after {visited} messages"
            )
            raise CrawlError(handle, visited) from exc
        extract_references(message, aggregator)
        visited += 1
        if on_message is not None:
            on_message(message, visited)

    _log(f"  Crawled {visited} messages, {len(aggregator)} distinct references")
    return CrawlResult(records=aggregator.snapshot(), messages_visited=visited)
