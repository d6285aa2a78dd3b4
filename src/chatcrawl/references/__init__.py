from .links import (
    RESERVED_PATHS,
    InviteHash,
    LinkReference,
    Mention,
    PublicName,
    classify_link,
    classify_mention,
)

__all__ = [
    "LinkReference",
    "PublicName",
    "InviteHash",
    "Mention",
    "RESERVED_PATHS",
    "classify_link",
    "classify_mention",
]
