"""What happens, beyond the sweep's own log line, when a retry entry is dropped for good.

Policy `log`: nothing more. Policy `notify`: also message the operator chat.
"""
from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from linklog.app.constants import DROPPED_ENTRY_POLICY
from linklog.app.core import SERVICE_NAME
from linklog.app.domain.models import RetryEntry
from linklog.app.ports.reply_sender import ReplySender


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class OperatorAlerter:
    def __init__(
        self,
        policy: str = DROPPED_ENTRY_POLICY.LOG,
        *,
        reply_sender: ReplySender | None = None,
        chat_id: int | str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        policy = (policy or DROPPED_ENTRY_POLICY.LOG).strip().lower()
        if policy not in (DROPPED_ENTRY_POLICY.LOG, DROPPED_ENTRY_POLICY.NOTIFY):
            raise ValueError(f"Unsupported dropped entry policy: {policy}")
        if policy == DROPPED_ENTRY_POLICY.NOTIFY and (reply_sender is None or not chat_id):
            raise ValueError("notify policy requires a reply sender and an alert chat id")
        self._policy = policy
        self._reply_sender = reply_sender
        self._chat_id = chat_id
        self._timeout_seconds = float(timeout_seconds)

    @property
    def policy(self) -> str:
        return self._policy

    async def entry_dropped(self, key: str, entry: RetryEntry) -> None:
        if self._policy != DROPPED_ENTRY_POLICY.NOTIFY:
            return
        text = (
            f"⚠️ Bookmark dropped after {entry.attempts} attempts: {entry.bookmark.url}\n"
            f"key: {key}\nlast error: {entry.last_error}"
        )
        try:
            await asyncio.wait_for(self._reply_sender.send(self._chat_id, text), timeout=self._timeout_seconds)
        except Exception as exc:
            logger.warning("operator alert for {} failed: {}", key, exc)
            return
        _log("operator_alerted", key=key, chat_id=self._chat_id)
