"""Opens the Mongo client and collection that back the retry queue."""
from __future__ import annotations

import inspect
from typing import Any
from urllib.parse import quote_plus

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from linklog.app.config.settings import Settings
from linklog.app.core import SERVICE_NAME
from linklog.app.core.backoff import exponential_backoff


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def build_mongo_uri(settings: Settings) -> str:
    host = f"{settings.database_host}:{settings.database_port}"
    if not (settings.database_user and settings.database_password):
        return f"mongodb://{host}"
    credentials = f"{quote_plus(settings.database_user)}:{quote_plus(settings.database_password)}"
    return f"mongodb://{credentials}@{host}"


async def _close_quietly(client: AsyncIOMotorClient) -> None:
    result = client.close()
    if inspect.isawaitable(result):
        await result


async def create_mongo_client(settings: Settings) -> AsyncIOMotorClient:
    """Return a client that has answered a ping, retrying with exponential backoff.

    Server selection, connect and socket I/O all share database_connection_timeout_ms,
    so no queue call can hang longer than that.
    """
    timeout_ms = settings.database_connection_timeout_ms
    uri = build_mongo_uri(settings)
    last_error: Exception | None = None
    attempt = 0
    async for _delay in exponential_backoff(
        settings.initial_backoff_seconds,
        settings.max_backoff_seconds,
        settings.backoff_multiplier,
        settings.max_connection_attempts,
    ):
        attempt += 1
        client = AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except Exception as exc:
            last_error = exc
            logger.warning(
                "retry queue mongo at {}:{} unreachable (attempt {}/{}): {}",
                settings.database_host,
                settings.database_port,
                attempt,
                settings.max_connection_attempts,
                exc,
            )
            await _close_quietly(client)
            continue
        _log("mongo_connected", host=settings.database_host, attempts=attempt)
        return client
    raise ConnectionError(f"mongo not reachable after {attempt} attempts") from last_error


def retry_collection(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorCollection:
    return client[settings.database_name][settings.database_collection]
