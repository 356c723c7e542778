"""Port: durable key-value store for pending bookmark writes. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol

from linklog.app.domain.models import RetryEntry


class RetryQueueError(Exception):
    """Retry queue backend failure."""


class RetryQueue(Protocol):
    """Per-key operations only; no cross-key atomicity is provided or assumed."""

    async def put(self, key: str, entry: RetryEntry) -> None: ...

    async def get(self, key: str) -> RetryEntry | None: ...

    async def delete(self, key: str) -> None: ...

    async def list(self, prefix: str) -> list[str]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None:
        """Release resources (e.g. DB client). No-op allowed if nothing to close."""
        ...
