"""MongoDB implementation of RetryQueue: one document per key, `_id` is the key."""
from __future__ import annotations

import inspect
import re
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from linklog.app.domain.models import RetryEntry
from linklog.app.ports.retry_queue import RetryQueueError


class MongoRetryQueue:
    """Concrete implementation of RetryQueue using MongoDB."""

    def __init__(self, collection: AsyncIOMotorCollection, *, client: Any | None = None) -> None:
        self._collection = collection
        self._client = client

    async def put(self, key: str, entry: RetryEntry) -> None:
        document = {
            "_id": key,
            "value": entry.to_dict(),
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            await self._collection.replace_one({"_id": key}, document, upsert=True)
        except PyMongoError as exc:
            raise RetryQueueError(f"put {key} failed: {exc}") from exc

    async def get(self, key: str) -> RetryEntry | None:
        try:
            doc = await self._collection.find_one({"_id": key})
        except PyMongoError as exc:
            raise RetryQueueError(f"get {key} failed: {exc}") from exc
        if not doc:
            return None
        return RetryEntry.from_dict(doc.get("value") or {})

    async def delete(self, key: str) -> None:
        try:
            await self._collection.delete_one({"_id": key})
        except PyMongoError as exc:
            raise RetryQueueError(f"delete {key} failed: {exc}") from exc

    async def list(self, prefix: str) -> list[str]:
        query = {"_id": {"$regex": f"^{re.escape(prefix)}"}}
        try:
            cursor = self._collection.find(query, projection={"_id": 1}).sort("_id", 1)
            return [doc["_id"] async for doc in cursor]
        except PyMongoError as exc:
            raise RetryQueueError(f"list {prefix!r} failed: {exc}") from exc

    async def ping(self) -> bool:
        if self._client is None:
            return True
        try:
            await self._client.admin.command("ping")
        except PyMongoError:
            return False
        return True

    async def close(self) -> None:
        """Close underlying Mongo client when owned by this adapter."""
        if self._client is not None:
            res = self._client.close()
            if inspect.isawaitable(res):
                await res
