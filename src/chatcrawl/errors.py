from __future__ import annotations

_TRANSIENT_LOOKUP_REASONS = frozenset({"flood_wait", "network", "timeout"})


class CrawlError(RuntimeError):
    """The message source failed before the history was exhausted."""

    def __init__(self, handle: object, messages_visited: int):
        self.handle = handle
        self.messages_visited = messages_visited
        super().__init__(
            f"Crawl of {handle} failed after {messages_visited} messages"
        )


class DirectoryLookupError(Exception):
    def __init__(
        self,
        reason: str,
        *,
        identifier: str | None = None,
        retry_after: float | None = None,
    ):
        self.reason = reason
        self.identifier = identifier
        self.retry_after = retry_after
        message_by_reason = {
            "flood_wait": "Telegram asked to slow down",
            "network": "Telegram connection failed",
            "timeout": "Telegram lookup timed out",
            "rpc_error": "Telegram rejected the lookup",
        }
        message = message_by_reason.get(reason, "Directory lookup failed")
        if identifier:
            message = f"{message}: {identifier}"
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.reason in _TRANSIENT_LOOKUP_REASONS
