from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .aggregate import Metadata

MENTION_KIND = "mention"


@dataclass(frozen=True)
class MentionSpan:
    offset: int
    length: int
    kind: str = MENTION_KIND


@dataclass(frozen=True)
class ChatMessage:
    id: int
    text: str
    mentions: tuple[MentionSpan, ...] = field(default_factory=tuple)


@runtime_checkable
class MessageSource(Protocol):
    def iter_messages(
        self, handle: object, *, limit: int | None = None
    ) -> AsyncIterator[ChatMessage]: ...


@runtime_checkable
class Directory(Protocol):
    async def lookup(self, identifier: str) -> Metadata | None: ...
