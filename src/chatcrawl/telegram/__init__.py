from .client import (
    TelegramDirectory,
    TelegramMessageSource,
    chat_message_from_telethon,
    make_client,
    metadata_from_entity,
    sign_in,
)
from .credentials import ApiCredentials, load_credentials, save_credentials

__all__ = [
    "ApiCredentials",
    "TelegramDirectory",
    "TelegramMessageSource",
    "chat_message_from_telethon",
    "load_credentials",
    "make_client",
    "metadata_from_entity",
    "save_credentials",
    "sign_in",
]
