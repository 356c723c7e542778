"""Composition root: build and lifecycle-manage concrete dependencies.

Shared by the webhook service and the sweep runner. Backends are selected from settings
through the infrastructure factories; nothing else imports concrete adapters.
"""
from __future__ import annotations

from loguru import logger

from linklog.app.application.ingestion_service import IngestionService
from linklog.app.application.operator_alerts import OperatorAlerter
from linklog.app.application.sweep_service import SweepService
from linklog.app.config.settings import Settings
from linklog.app.domain.bookmark_log import BookmarkLog
from linklog.app.domain.metadata_resolver import MetadataResolver
from linklog.app.infrastructure.http.factory import create_http_client
from linklog.app.infrastructure.messaging.factory import create_reply_sender
from linklog.app.infrastructure.queue.factory import create_retry_queue
from linklog.app.infrastructure.storage.factory import create_blob_store
from linklog.app.ports.http_client import AbstractHttpClient
from linklog.app.ports.reply_sender import ReplySender
from linklog.app.ports.retry_queue import RetryQueue
from linklog.app.ports.versioned_store import VersionedBlobStore


class AppDependencies:
    """Holds wired dependencies and their lifecycle."""

    def __init__(self, *, settings: Settings) -> None:
        self._settings = settings
        self._http_client: AbstractHttpClient | None = None
        self._blob_store: VersionedBlobStore | None = None
        self._retry_queue: RetryQueue | None = None
        self._reply_sender: ReplySender | None = None
        self._bookmark_log: BookmarkLog | None = None
        self._ingestion_service: IngestionService | None = None
        self._sweep_service: SweepService | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def retry_queue(self) -> RetryQueue:
        if self._retry_queue is None:
            raise RuntimeError("retry_queue is not initialized")
        return self._retry_queue

    @property
    def reply_sender(self) -> ReplySender:
        if self._reply_sender is None:
            raise RuntimeError("reply_sender is not initialized")
        return self._reply_sender

    @property
    def bookmark_log(self) -> BookmarkLog:
        if self._bookmark_log is None:
            raise RuntimeError("bookmark_log is not initialized")
        return self._bookmark_log

    @property
    def ingestion_service(self) -> IngestionService:
        if self._ingestion_service is None:
            raise RuntimeError("ingestion_service is not initialized")
        return self._ingestion_service

    @property
    def sweep_service(self) -> SweepService:
        if self._sweep_service is None:
            raise RuntimeError("sweep_service is not initialized")
        return self._sweep_service

    async def connect(self) -> None:
        try:
            await self._wire()
        except Exception:
            await self.close()
            raise

    async def _wire(self) -> None:
        settings = self._settings
        self._retry_queue = await create_retry_queue(settings)
        self._blob_store = create_blob_store(settings)
        self._reply_sender = create_reply_sender(settings)
        self._http_client = create_http_client(settings)

        self._bookmark_log = BookmarkLog(
            self._blob_store,
            path=settings.bookmarks_path,
            max_attempts=settings.append_max_attempts,
            io_timeout_seconds=settings.store_timeout_seconds,
            backoff_min_seconds=settings.append_backoff_min_seconds,
            backoff_max_seconds=settings.append_backoff_max_seconds,
        )
        resolver = MetadataResolver(
            self._http_client,
            timeout_seconds=settings.metadata_timeout_seconds,
            connect_timeout_seconds=settings.metadata_connect_timeout_seconds,
            default_headers={"User-Agent": settings.metadata_user_agent},
        )
        self._ingestion_service = IngestionService(
            resolver,
            self._bookmark_log,
            self._retry_queue,
            queue_timeout_seconds=settings.queue_timeout_seconds,
        )
        alerter = OperatorAlerter(
            settings.dropped_entry_policy,
            reply_sender=self._reply_sender,
            chat_id=settings.alert_chat_id or None,
            timeout_seconds=settings.reply_timeout_seconds,
        )
        self._sweep_service = SweepService(
            self._retry_queue,
            self._bookmark_log,
            max_attempts=settings.retry_max_attempts,
            queue_timeout_seconds=settings.queue_timeout_seconds,
            alerter=alerter,
        )

    async def close(self) -> None:
        for name in ("_http_client", "_reply_sender", "_blob_store", "_retry_queue"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("{} close failed: {}", name.lstrip("_"), exc)
            setattr(self, name, None)

        self._bookmark_log = None
        self._ingestion_service = None
        self._sweep_service = None


def create_app_dependencies(settings: Settings | None = None) -> AppDependencies:
    return AppDependencies(settings=settings or Settings())
