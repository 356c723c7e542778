"""
Accepts the raw text of an inbound message and returns an outcome.
The webhook router translates the outcome into a chat reply.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from linklog.app.constants import EXTRACTION_STATUS, SOURCE, SUBMIT_STATUS, retry_key
from linklog.app.core import SERVICE_NAME
from linklog.app.domain.bookmark_log import BookmarkLog, PersistenceError
from linklog.app.domain.metadata_resolver import InvalidUrlError, MetadataResolver
from linklog.app.domain.models import BookmarkRecord, ResolvedMetadata, RetryEntry
from linklog.app.domain.url_extraction import extract_first_url
from linklog.app.ports.retry_queue import RetryQueue, RetryQueueError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


@dataclass(frozen=True)
class IngestionOutcome:
    """Result of submit.
    SAVED  => record is in the log.
    QUEUED => record is in the retry queue under retry:<id>.
    IGNORED => no URL, or an invalid one; nothing was written. `reason` says which.
    """

    status: str
    record: BookmarkRecord | None = None
    reason: str | None = None

    @property
    def saved(self) -> bool:
        return self.status == SUBMIT_STATUS.SAVED

    @property
    def queued(self) -> bool:
        return self.status == SUBMIT_STATUS.QUEUED

    @property
    def ignored(self) -> bool:
        return self.status == SUBMIT_STATUS.IGNORED


class IngestionService:
    """Extract URL → resolve metadata → append to the log, or park the record in the retry queue."""

    def __init__(
        self,
        resolver: MetadataResolver,
        bookmark_log: BookmarkLog,
        retry_queue: RetryQueue,
        *,
        source: str = SOURCE.TELEGRAM,
        queue_timeout_seconds: float = 10.0,
    ) -> None:
        self._resolver = resolver
        self._bookmark_log = bookmark_log
        self._retry_queue = retry_queue
        self._source = source
        self._queue_timeout_seconds = float(queue_timeout_seconds)

    async def submit(
        self,
        raw_text: str | None,
        *,
        chat_id: int | str | None = None,
        source: str | None = None,
    ) -> IngestionOutcome:
        url = extract_first_url(raw_text)
        if url is None:
            return IngestionOutcome(status=SUBMIT_STATUS.IGNORED, reason="no_url")

        try:
            metadata, extraction_status = await self._resolve(url)
        except InvalidUrlError as exc:
            _log("bookmark_ignored", url=url, chat_id=chat_id, reason="invalid_url", error=str(exc))
            return IngestionOutcome(status=SUBMIT_STATUS.IGNORED, reason="invalid_url")

        record = BookmarkRecord.create(
            url,
            source=source or self._source,
            metadata=metadata,
            extraction_status=extraction_status,
            chat_id=chat_id,
        )

        try:
            _, token = await self._bookmark_log.read()
            await self._bookmark_log.append([record], token)
        except PersistenceError as exc:
            await self._enqueue(record, str(exc))
            _log("bookmark_queued", id=record.id, url=record.url, chat_id=chat_id, error=str(exc))
            return IngestionOutcome(status=SUBMIT_STATUS.QUEUED, record=record)

        _log(
            "bookmark_saved",
            id=record.id,
            url=record.url,
            chat_id=chat_id,
            extraction_status=record.extraction_status,
        )
        return IngestionOutcome(status=SUBMIT_STATUS.SAVED, record=record)

    async def _resolve(self, url: str) -> tuple[ResolvedMetadata, str]:
        try:
            metadata = await self._resolver.resolve(url)
        except InvalidUrlError:
            raise
        except Exception as exc:
            logger.exception("metadata resolution crashed for {}: {}", url, exc)
            return ResolvedMetadata.partial_for(url), EXTRACTION_STATUS.FAILED
        if metadata.partial:
            return metadata, EXTRACTION_STATUS.PARTIAL
        return metadata, EXTRACTION_STATUS.SUCCESS

    async def _enqueue(self, record: BookmarkRecord, error: str) -> None:
        key = retry_key(record.id)
        entry = RetryEntry.first_failure(record, error)
        try:
            await asyncio.wait_for(self._retry_queue.put(key, entry), timeout=self._queue_timeout_seconds)
        except (asyncio.TimeoutError, RetryQueueError) as exc:
            # Neither the log nor the queue has the record now; log it whole so it can be replayed by hand.
            logger.bind(
                service_name=SERVICE_NAME,
                event="retry_enqueue_failed",
                key=key,
                bookmark=record.to_dict(),
            ).error("could not enqueue {}: {}", key, exc)
            raise RetryQueueError(f"could not enqueue {key}: {exc}") from exc
