from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import ClassVar

_LINK_PREFIX = r"https?://(?:www\.)?(?:t|telegram)\.me/"
_PUBLIC_NAME_RE = re.compile(_LINK_PREFIX + r"([a-zA-Z0-9_]+)", re.IGNORECASE)
_INVITE_HASH_RE = re.compile(
    _LINK_PREFIX + r"(?:joinchat/|\+)([a-zA-Z0-9_-]+)", re.IGNORECASE
)

# Path segments that point at Telegram actions rather than chats or users.
RESERVED_PATHS = frozenset(
    {
        "joinchat",
        "addstickers",
        "addemoji",
        "addtheme",
        "share",
        "socks",
        "proxy",
        "bg",
        "login",
        "invoice",
        "setlanguage",
        "confirmphone",
        "path",
        "c",
    }
)


@dataclass(frozen=True)
class LinkReference:
    identifier: str

    tag: ClassVar[str] = "LinkReference"
    resolvable: ClassVar[bool] = True

    def normalized(self) -> LinkReference:
        return replace(self, identifier=self.identifier.lower())

    def to_dict(self) -> dict[str, str]:
        return {self.tag: self.identifier}


@dataclass(frozen=True)
class PublicName(LinkReference):
    tag: ClassVar[str] = "PublicName"


@dataclass(frozen=True)
class InviteHash(LinkReference):
    tag: ClassVar[str] = "InviteHash"
    resolvable: ClassVar[bool] = False


@dataclass(frozen=True)
class Mention(LinkReference):
    tag: ClassVar[str] = "Mention"


def _extract_public_name(text: str) -> str | None:
    match = _PUBLIC_NAME_RE.search(text)
    if not match:
        return None
    segment = match.group(1)
    if segment.lower() in RESERVED_PATHS:
        return None
    return segment


def _extract_invite_hash(text: str) -> str | None:
    match = _INVITE_HASH_RE.search(text)
    if not match:
        return None
    return match.group(1)


def classify_link(text: str) -> LinkReference | None:
    """
    Return the chat reference carried by the first Telegram link in ``text``.

    A public name wins over an invite hash; reserved action paths such as
    ``/addstickers`` or ``/c/`` yield nothing.
    """
    name = _extract_public_name(text)
    if name is not None:
        return PublicName(name)
    token = _extract_invite_hash(text)
    if token is not None:
        return InviteHash(token)
    return None


def classify_mention(text: str, offset: int, length: int) -> Mention:
    """
    Slice a mention annotation out of ``text``.

    ``offset`` and ``length`` count UTF-16 code units, the coordinate system
    Telegram uses for message entities.
    """
    units = text.encode("utf-16-le")
    total = len(units) // 2
    if offset < 0 or length < 0 or offset + length > total:
        raise ValueError(
            f"Mention span {offset}+{length} is outside text of {total} UTF-16 units"
        )
    raw = units[offset * 2 : (offset + length) * 2].decode(
        "utf-16-le", errors="replace"
    )
    return Mention(raw.strip().lstrip("@").strip().lower())
