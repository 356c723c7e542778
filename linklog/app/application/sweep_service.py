from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, TypeVar

from loguru import logger

from linklog.app.application.operator_alerts import OperatorAlerter
from linklog.app.constants import MAX_RETRY_ATTEMPTS, RETRY_KEY_PREFIX, SWEEP_OUTCOME
from linklog.app.core import SERVICE_NAME
from linklog.app.domain.bookmark_log import BookmarkLog
from linklog.app.domain.models import RetryEntry, utc_now_iso
from linklog.app.ports.retry_queue import RetryQueue

T = TypeVar("T")


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class QueueExhaustedError(Exception):
    """A retry entry reached the maximum attempt count and was dropped."""

    def __init__(self, key: str, attempts: int, last_error: str) -> None:
        super().__init__(f"{key} dropped after {attempts} attempts: {last_error}")
        self.key = key
        self.attempts = attempts
        self.last_error = last_error


@dataclass
class SweepReport:
    resolved: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errored: list[str] = field(default_factory=list)

    def record(self, key: str, outcome: str) -> None:
        bucket = {
            SWEEP_OUTCOME.RESOLVED: self.resolved,
            SWEEP_OUTCOME.PENDING: self.pending,
            SWEEP_OUTCOME.DROPPED: self.dropped,
            SWEEP_OUTCOME.SKIPPED: self.skipped,
        }.get(outcome, self.errored)
        bucket.append(key)

    @property
    def total(self) -> int:
        return len(self.resolved) + len(self.pending) + len(self.dropped) + len(self.skipped) + len(self.errored)


class SweepService:
    """
    Drains the retry queue back into the bookmark log.

    Entry lifecycle: created by ingestion with attempts=1. Each sweep replays the stored
    bookmark verbatim (no re-enrichment). Success deletes the key. A failure with
    attempts < max_attempts stores attempts+1; a failure with attempts >= max_attempts
    deletes the key (dropped). With max_attempts=3 an entry sees at most three sweeps.

    Entries are independent: an error while handling one is logged and the sweep moves on.
    """

    def __init__(
        self,
        retry_queue: RetryQueue,
        bookmark_log: BookmarkLog,
        *,
        max_attempts: int = MAX_RETRY_ATTEMPTS,
        queue_timeout_seconds: float = 10.0,
        alerter: OperatorAlerter | None = None,
    ) -> None:
        self._queue = retry_queue
        self._bookmark_log = bookmark_log
        self._max_attempts = int(max_attempts)
        self._queue_timeout_seconds = float(queue_timeout_seconds)
        self._alerter = alerter or OperatorAlerter()

    async def run(self) -> SweepReport:
        report = SweepReport()
        try:
            keys = await self._bounded(self._queue.list(RETRY_KEY_PREFIX))
        except Exception as exc:
            logger.exception("listing retry keys failed: {}", exc)
            return report

        _log("sweep_started", pending_keys=len(keys))
        for key in keys:
            try:
                outcome = await self._process_key(key)
            except Exception as exc:
                logger.exception("retry entry {} could not be processed: {}", key, exc)
                outcome = SWEEP_OUTCOME.ERRORED
            report.record(key, outcome)

        _log(
            "sweep_completed",
            resolved=len(report.resolved),
            pending=len(report.pending),
            dropped=len(report.dropped),
            skipped=len(report.skipped),
            errored=len(report.errored),
        )
        return report

    async def _process_key(self, key: str) -> str:
        entry = await self._bounded(self._queue.get(key))
        if entry is None:
            # Resolved by a concurrent sweep since listing.
            return SWEEP_OUTCOME.SKIPPED

        try:
            _, token = await self._bookmark_log.read()
            await self._bookmark_log.append([entry.bookmark], token)
        except Exception as exc:
            return await self._handle_failure(key, entry, str(exc) or type(exc).__name__)

        await self._bounded(self._queue.delete(key))
        _log("retry_resolved", key=key, id=entry.bookmark.id, attempts=entry.attempts)
        return SWEEP_OUTCOME.RESOLVED

    async def _handle_failure(self, key: str, entry: RetryEntry, error_text: str) -> str:
        if entry.attempts >= self._max_attempts:
            await self._bounded(self._queue.delete(key))
            dropped = replace(entry, last_error=error_text, last_attempt=utc_now_iso())
            exhausted = QueueExhaustedError(key, dropped.attempts, error_text)
            logger.bind(
                service_name=SERVICE_NAME,
                event="retry_dropped",
                key=key,
                attempts=dropped.attempts,
                bookmark=dropped.bookmark.to_dict(),
            ).error("{}", exhausted)
            await self._alerter.entry_dropped(key, dropped)
            return SWEEP_OUTCOME.DROPPED

        updated = entry.after_failed_attempt(error_text)
        await self._bounded(self._queue.put(key, updated))
        _log("retry_pending", key=key, attempts=updated.attempts, error=error_text)
        return SWEEP_OUTCOME.PENDING

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._queue_timeout_seconds)
