"""Reply sender factory: selects implementation from config. Only place that imports concrete senders."""
from __future__ import annotations

import httpx

from linklog.app.config.settings import Settings
from linklog.app.infrastructure.messaging.log.log_reply_sender import LogReplySender
from linklog.app.infrastructure.messaging.telegram.telegram_reply_sender import TelegramReplySender
from linklog.app.ports.reply_sender import ReplySender


def create_reply_sender(settings: Settings) -> ReplySender:
    backend = settings.reply_backend.strip().lower()

    if backend == "telegram":
        client = httpx.AsyncClient(timeout=httpx.Timeout(settings.reply_timeout_seconds))
        return TelegramReplySender(
            client,
            bot_token=settings.telegram_bot_token,
            api_url=settings.telegram_api_url,
        )

    if backend == "log":
        return LogReplySender()

    raise ValueError(f"Unsupported reply backend: {backend}")
