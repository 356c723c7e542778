"""Port: a remote text blob that can only be replaced whole, conditionally on its revision.

Implementations live in infrastructure (GitHub contents API, in-memory).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class BlobStoreError(Exception):
    """Base for blob store failures (network, unexpected status, etc.)."""


class ConflictError(BlobStoreError):
    """The expected revision is no longer current: another writer committed first."""


@dataclass(frozen=True)
class BlobSnapshot:
    """Blob content and its revision at read time. Both are None when the blob does not exist."""

    content: str | None
    revision: str | None

    @property
    def exists(self) -> bool:
        return self.revision is not None


class VersionedBlobStore(Protocol):
    async def read_blob(self, path: str) -> BlobSnapshot: ...

    async def write_blob(
        self,
        path: str,
        content: str,
        *,
        expected_revision: str | None,
        message: str,
    ) -> str:
        """Replace the blob if its revision equals expected_revision (None: blob must not exist).

        Returns the new revision; raises ConflictError on mismatch, BlobStoreError otherwise.
        """
        ...

    async def close(self) -> None:
        """Release resources. No-op allowed if nothing to close."""
        ...
