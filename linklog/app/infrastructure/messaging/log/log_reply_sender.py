"""ReplySender that only logs. For local mode, where there is no bot to answer through."""
from __future__ import annotations

from loguru import logger

from linklog.app.core import SERVICE_NAME


class LogReplySender:
    async def send(self, chat_id: int | str, text: str) -> None:
        logger.bind(service_name=SERVICE_NAME, event="reply_logged", chat_id=chat_id).info(text)

    async def close(self) -> None:
        return
