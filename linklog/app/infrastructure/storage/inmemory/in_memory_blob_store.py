"""In-memory VersionedBlobStore for local mode and tests.

Revisions are SHA-256 digests of the content. Each call yields to the event loop once
before touching state, so concurrent writers interleave like they would against a
remote store; the revision check and the replace happen with no await in between.
"""
from __future__ import annotations

import asyncio
import hashlib

from linklog.app.ports.versioned_store import BlobSnapshot, ConflictError


def content_revision(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class InMemoryBlobStore:
    def __init__(self, blobs: dict[str, str] | None = None) -> None:
        self._blobs: dict[str, str] = dict(blobs or {})
        self.write_count = 0
        self.conflict_count = 0

    async def read_blob(self, path: str) -> BlobSnapshot:
        await asyncio.sleep(0)
        content = self._blobs.get(path)
        if content is None:
            return BlobSnapshot(content=None, revision=None)
        return BlobSnapshot(content=content, revision=content_revision(content))

    async def write_blob(
        self,
        path: str,
        content: str,
        *,
        expected_revision: str | None,
        message: str,
    ) -> str:
        await asyncio.sleep(0)
        current = self._blobs.get(path)
        current_revision = content_revision(current) if current is not None else None
        if current_revision != expected_revision:
            self.conflict_count += 1
            raise ConflictError(f"revision mismatch for {path}: expected {expected_revision}, found {current_revision}")
        self._blobs[path] = content
        self.write_count += 1
        return content_revision(content)

    def content(self, path: str) -> str | None:
        return self._blobs.get(path)

    async def close(self) -> None:
        return
