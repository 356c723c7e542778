"""Port: send a plain-text message to a chat. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol


class ReplySendError(Exception):
    """Raised when a reply could not be delivered."""


class ReplySender(Protocol):
    async def send(self, chat_id: int | str, text: str) -> None: ...

    async def close(self) -> None: ...
