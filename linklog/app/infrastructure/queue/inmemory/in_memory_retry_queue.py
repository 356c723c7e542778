"""In-memory retry queue for local mode and tests. Entries are kept serialized, like the real store."""
from __future__ import annotations

import json

from linklog.app.domain.models import RetryEntry


class InMemoryRetryQueue:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    async def put(self, key: str, entry: RetryEntry) -> None:
        self._values[key] = json.dumps(entry.to_dict(), ensure_ascii=False)

    async def get(self, key: str) -> RetryEntry | None:
        raw = self._values.get(key)
        if raw is None:
            return None
        return RetryEntry.from_dict(json.loads(raw))

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def list(self, prefix: str) -> list[str]:
        return sorted(key for key in self._values if key.startswith(prefix))

    async def ping(self) -> bool:
        return True

    def put_raw(self, key: str, raw: str) -> None:
        self._values[key] = raw

    async def close(self) -> None:
        return
