from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

from ..aggregate import Metadata
from ..errors import DirectoryLookupError
from ..source import MENTION_KIND, ChatMessage, MentionSpan

if TYPE_CHECKING:
    from telethon import TelegramClient

    from .credentials import ApiCredentials


def make_client(credentials: ApiCredentials, session: str) -> TelegramClient:
    from telethon import TelegramClient

    return TelegramClient(session, credentials.api_id, credentials.api_hash)


async def sign_in(
    client: TelegramClient,
    *,
    phone: Callable[[], str],
    code: Callable[[], str],
    password: Callable[[], str],
) -> None:
    """Connect and, when the session is not authorized yet, run the login flow."""
    await client.start(phone=phone, code_callback=code, password=password)


def metadata_from_entity(entity: Any) -> Metadata:
    from telethon import types, utils

    if isinstance(entity, types.User):
        kind = "User"
    elif isinstance(entity, (types.Chat, types.ChatForbidden)):
        kind = "Group"
    elif isinstance(entity, (types.Channel, types.ChannelForbidden)):
        kind = "Group" if getattr(entity, "megagroup", False) else "Channel"
    else:
        raise ValueError(f"Unexpected Telegram entity: {type(entity).__name__}")
    return Metadata(name=utils.get_display_name(entity), kind=kind)


def chat_message_from_telethon(message: Any) -> ChatMessage:
    from telethon import types

    spans = tuple(
        MentionSpan(offset=entity.offset, length=entity.length, kind=MENTION_KIND)
        for entity in (getattr(message, "entities", None) or ())
        if isinstance(entity, types.MessageEntityMention)
    )
    return ChatMessage(
        id=int(getattr(message, "id", 0) or 0),
        text=getattr(message, "message", None) or "",
        mentions=spans,
    )


class TelegramMessageSource:
    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def iter_messages(
        self, handle: object, *, limit: int | None = None
    ) -> AsyncIterator[ChatMessage]:
        async for message in self._client.iter_messages(handle, limit=limit):
            yield chat_message_from_telethon(message)


def _not_found_errors() -> tuple[type[Exception], ...]:
    from telethon import errors

    return (errors.UsernameNotOccupiedError, errors.UsernameInvalidError, ValueError)


class TelegramDirectory:
    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def get_chat(self, identifier: str) -> Any | None:
        try:
            return await self._client.get_entity(identifier)
        except _not_found_errors():
            return None

    async def lookup(self, identifier: str) -> Metadata | None:
        from telethon import errors

        try:
            entity = await self._client.get_entity(identifier)
        except _not_found_errors():
            return None
        except errors.FloodWaitError as exc:
            raise DirectoryLookupError(
                "flood_wait", identifier=identifier, retry_after=exc.seconds
            ) from exc
        except errors.RPCError as exc:
            raise DirectoryLookupError("rpc_error", identifier=identifier) from exc
        except asyncio.TimeoutError as exc:
            raise DirectoryLookupError("timeout", identifier=identifier) from exc
        except OSError as exc:
            raise DirectoryLookupError("network", identifier=identifier) from exc
        return metadata_from_entity(entity)
