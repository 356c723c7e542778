"""ReplySender over the Telegram Bot API `sendMessage` method."""
from __future__ import annotations

import httpx

from linklog.app.ports.reply_sender import ReplySendError


class TelegramReplySender:
    def __init__(self, client: httpx.AsyncClient, *, bot_token: str, api_url: str = "https://api.telegram.org") -> None:
        if not bot_token:
            raise ValueError("telegram bot token is required")
        self._client = client
        self._send_url = f"{api_url.rstrip('/')}/bot{bot_token}/sendMessage"

    async def send(self, chat_id: int | str, text: str) -> None:
        try:
            response = await self._client.post(self._send_url, json={"chat_id": chat_id, "text": text})
        except httpx.TimeoutException as exc:
            raise ReplySendError(f"telegram sendMessage to {chat_id} timed out") from exc
        except httpx.HTTPError as exc:
            # The bot token is part of the URL; keep it out of the message.
            raise ReplySendError(f"telegram sendMessage to {chat_id} failed: {type(exc).__name__}") from exc
        if not response.is_success:
            raise ReplySendError(f"telegram sendMessage to {chat_id} returned {response.status_code}")

    async def close(self) -> None:
        await self._client.aclose()
