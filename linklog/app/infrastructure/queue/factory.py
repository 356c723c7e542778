"""Retry queue factory: selects and assembles the queue adapter."""
from __future__ import annotations

from linklog.app.config.settings import Settings
from linklog.app.infrastructure.queue.inmemory.in_memory_retry_queue import InMemoryRetryQueue
from linklog.app.infrastructure.queue.mongo.connection import create_mongo_client, retry_collection
from linklog.app.infrastructure.queue.mongo.mongo_retry_queue import MongoRetryQueue
from linklog.app.ports.retry_queue import RetryQueue


async def create_retry_queue(settings: Settings) -> RetryQueue:
    """Select queue adapter from configuration and return port type."""
    backend = settings.retry_queue_backend.strip().lower()

    if backend == "mongo":
        mongo_client = await create_mongo_client(settings)
        return MongoRetryQueue(retry_collection(mongo_client, settings), client=mongo_client)

    if backend == "inmemory":
        return InMemoryRetryQueue()

    raise ValueError(f"Unsupported retry queue backend: {backend}")
