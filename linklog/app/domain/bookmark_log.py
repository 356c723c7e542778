"""Append-only bookmark log on top of a VersionedBlobStore.

The store can only replace the whole blob if its revision still matches, so an append
is: read content + revision, add the new lines, write conditionally. When another writer
commits in between, the write is rejected; we re-read, reapply the same lines on top of
the fresh content and try again, up to `max_attempts` writes with a randomized pause
between them. Live submissions and the retry sweep both go through here and race as
equals.

Invariants:
  - existing lines are never rewritten; new lines go after them in commit order;
  - a record whose id is already in the log is not written again;
  - the blob is one compact JSON object per line and ends with a single newline.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from loguru import logger

from linklog.app.constants import DEFAULT_BOOKMARKS_PATH, MAX_APPEND_ATTEMPTS
from linklog.app.core import SERVICE_NAME
from linklog.app.core.backoff import sleep_jittered
from linklog.app.domain.models import BookmarkRecord
from linklog.app.ports.versioned_store import BlobSnapshot, BlobStoreError, ConflictError, VersionedBlobStore


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PersistenceError(Exception):
    """An append could not be committed. Callers treat it as transient."""


@dataclass(frozen=True)
class RevisionToken:
    """Exact state of the log at read time. Required for a conditional append.

    Opaque to callers; it carries the content read at `revision` so an append can be
    computed without reading again. A token without content (built by hand) makes
    `append` read the log first. Two tokens are equal when their revisions are.
    """

    revision: str | None
    content: str | None = field(default=None, repr=False, compare=False)


def serialize_records(records: Sequence[BookmarkRecord]) -> str:
    return "".join(record.to_json_line() + "\n" for record in records)


def parse_log(content: str) -> list[BookmarkRecord]:
    """Parse log content, skipping blank and malformed lines (they stay in the blob untouched)."""
    records: list[BookmarkRecord] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(BookmarkRecord.from_dict(json.loads(line)))
        except (ValueError, TypeError) as exc:
            logger.warning("skipping malformed bookmark on line {}: {}", line_number, exc)
    return records


def _existing_ids(content: str) -> set[str]:
    ids: set[str] = set()
    for line in content.splitlines():
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except ValueError:
            continue
        if isinstance(data, dict) and isinstance(data.get("id"), str):
            ids.add(data["id"])
    return ids


def _normalized(content: str) -> str:
    body = content.rstrip("\r\n")
    return body + "\n" if body.strip() else ""


def _commit_message(records: Sequence[BookmarkRecord]) -> str:
    if len(records) == 1:
        return f"Add: {records[0].title or records[0].url}"
    return f"Add {len(records)} bookmarks"


class BookmarkLog:
    """Read/append interface over the shared bookmarks file."""

    def __init__(
        self,
        store: VersionedBlobStore,
        *,
        path: str = DEFAULT_BOOKMARKS_PATH,
        max_attempts: int = MAX_APPEND_ATTEMPTS,
        io_timeout_seconds: float = 10.0,
        backoff_min_seconds: float = 0.2,
        backoff_max_seconds: float = 0.7,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._path = path
        self._max_attempts = int(max_attempts)
        self._io_timeout_seconds = float(io_timeout_seconds)
        self._backoff_min_seconds = float(backoff_min_seconds)
        self._backoff_max_seconds = float(backoff_max_seconds)

    @property
    def path(self) -> str:
        return self._path

    async def read(self) -> tuple[list[BookmarkRecord], RevisionToken]:
        token = await self._read_token()
        return parse_log(token.content or ""), token

    async def append(self, records: Sequence[BookmarkRecord], base_token: RevisionToken) -> RevisionToken:
        """Append records on top of base_token; returns the token of the committed state.

        Raises PersistenceError when every attempt conflicted or the store failed.
        """
        pending = list(records)
        if not pending:
            return base_token

        token = base_token if base_token.content is not None else await self._read_token()
        for attempt in range(1, self._max_attempts + 1):
            present = _existing_ids(token.content or "")
            to_write = [record for record in pending if record.id not in present]
            if not to_write:
                _log("append_already_present", path=self._path, ids=[r.id for r in pending])
                return token

            content = _normalized(token.content or "") + serialize_records(to_write)
            try:
                revision = await self._write(content, token.revision, _commit_message(to_write))
            except ConflictError as exc:
                _log(
                    "append_conflict",
                    path=self._path,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    revision=token.revision,
                    error=str(exc),
                )
                if attempt >= self._max_attempts:
                    break
                await sleep_jittered(self._backoff_min_seconds, self._backoff_max_seconds)
                token = await self._read_token()
                continue

            _log(
                "append_committed",
                path=self._path,
                attempt=attempt,
                ids=[r.id for r in to_write],
                revision=revision,
            )
            return RevisionToken(revision=revision, content=content)

        raise PersistenceError(
            f"append to {self._path} failed after {self._max_attempts} attempts due to conflicts"
        )

    async def _read_token(self) -> RevisionToken:
        try:
            snapshot: BlobSnapshot = await asyncio.wait_for(
                self._store.read_blob(self._path), timeout=self._io_timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise PersistenceError(f"read of {self._path} timed out") from exc
        except BlobStoreError as exc:
            raise PersistenceError(f"read of {self._path} failed: {exc}") from exc
        return RevisionToken(revision=snapshot.revision, content=snapshot.content or "")

    async def _write(self, content: str, expected_revision: str | None, message: str) -> str:
        try:
            return await asyncio.wait_for(
                self._store.write_blob(
                    self._path,
                    content,
                    expected_revision=expected_revision,
                    message=message,
                ),
                timeout=self._io_timeout_seconds,
            )
        except ConflictError:
            raise
        except asyncio.TimeoutError as exc:
            raise PersistenceError(f"write of {self._path} timed out") from exc
        except BlobStoreError as exc:
            raise PersistenceError(f"write of {self._path} failed: {exc}") from exc
