"""Builders and fakes shared by the unit tests."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

from linklog.app.application.ingestion_service import IngestionOutcome
from linklog.app.domain.bookmark_log import BookmarkLog
from linklog.app.domain.models import BookmarkRecord, ResolvedMetadata
from linklog.app.ports.http_client import RequestTimeout
from linklog.app.ports.versioned_store import BlobSnapshot, ConflictError

LOG_PATH = "data/bookmarks.jsonl"


def make_record(**overrides: Any) -> BookmarkRecord:
    fields: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "url": "https://example.com/article",
        "source": "telegram",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "extraction_status": "success",
        "title": "Example article",
    }
    fields.update(overrides)
    return BookmarkRecord(**fields)


def make_log(store: Any, **overrides: Any) -> BookmarkLog:
    options: dict[str, Any] = {
        "path": LOG_PATH,
        "backoff_min_seconds": 0.0,
        "backoff_max_seconds": 0.0,
    }
    options.update(overrides)
    return BookmarkLog(store, **options)


class FakeResolver:
    """Stands in for MetadataResolver; records every URL it is asked about."""

    def __init__(
        self,
        result: ResolvedMetadata | None = None,
        *,
        raise_on_resolve: Exception | None = None,
    ) -> None:
        self._result = result
        self._raise_on_resolve = raise_on_resolve
        self.calls: list[str] = []

    async def resolve(self, url: str) -> ResolvedMetadata:
        self.calls.append(url)
        if self._raise_on_resolve is not None:
            raise self._raise_on_resolve
        if self._result is not None:
            return self._result
        return ResolvedMetadata(canonical_url=url, title="Example", description="An example page")


class FailingBlobStore:
    """Reads an empty or given log; every write raises `write_error`."""

    def __init__(self, write_error: Exception, *, content: str | None = None) -> None:
        self._write_error = write_error
        self._content = content
        self.write_attempts = 0

    async def read_blob(self, path: str) -> BlobSnapshot:
        if self._content is None:
            return BlobSnapshot(content=None, revision=None)
        return BlobSnapshot(content=self._content, revision="r1")

    async def write_blob(self, path: str, content: str, *, expected_revision: str | None, message: str) -> str:
        self.write_attempts += 1
        raise self._write_error

    async def close(self) -> None:
        return


class AlwaysConflictingStore(FailingBlobStore):
    def __init__(self) -> None:
        super().__init__(ConflictError("revision is stale"), content="")


class ScriptedBlobStore:
    """Revision is `r<N>`; N goes up by one per commit.

    Records placed in `intruder` are committed by "another writer" right before the
    next write is checked, which makes that write stale.
    """

    def __init__(self, initial: list[BookmarkRecord]) -> None:
        self.content = "".join(r.to_json_line() + "\n" for r in initial)
        self.revision_number = 1
        self.intruder: list[BookmarkRecord] = []
        self.reads = 0
        self.write_revisions: list[str | None] = []

    @property
    def revision(self) -> str:
        return f"r{self.revision_number}"

    async def read_blob(self, path: str) -> BlobSnapshot:
        self.reads += 1
        return BlobSnapshot(content=self.content, revision=self.revision)

    async def write_blob(self, path: str, content: str, *, expected_revision: str | None, message: str) -> str:
        if self.intruder:
            self.content += "".join(r.to_json_line() + "\n" for r in self.intruder)
            self.intruder = []
            self.revision_number += 1
        self.write_revisions.append(expected_revision)
        if expected_revision != self.revision:
            raise ConflictError(f"expected {expected_revision}, current {self.revision}")
        self.content = content
        self.revision_number += 1
        return self.revision

    async def close(self) -> None:
        return


@dataclass
class FakeResponse:
    status_code: int
    url: str
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)


class FakeHttpClient:
    """AbstractHttpClient fake: returns `response`, raises `exc`, optionally after `delay` seconds."""

    def __init__(
        self,
        response: FakeResponse | None = None,
        *,
        exc: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._response = response
        self._exc = exc
        self._delay = delay
        self.calls: list[tuple[str, RequestTimeout, bool, dict[str, str] | None]] = []
        self.cancelled = False

    async def get(
        self,
        url: str,
        *,
        timeout: RequestTimeout,
        follow_redirects: bool = True,
        headers: dict[str, str] | None = None,
    ) -> FakeResponse:
        self.calls.append((url, timeout, follow_redirects, headers))
        if self._delay:
            try:
                await asyncio.sleep(self._delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self._exc is not None:
            raise self._exc
        assert self._response is not None
        return self._response

    async def close(self) -> None:
        return


class CapturingReplySender:
    def __init__(self, *, raise_on_send: Exception | None = None) -> None:
        self.sent: list[tuple[int | str, str]] = []
        self._raise_on_send = raise_on_send

    async def send(self, chat_id: int | str, text: str) -> None:
        if self._raise_on_send is not None:
            raise self._raise_on_send
        self.sent.append((chat_id, text))

    async def close(self) -> None:
        return


class FakeIngestion:
    """Implements IngestionService.submit for router tests."""

    def __init__(
        self,
        outcome: IngestionOutcome | None = None,
        *,
        raise_on_submit: Exception | None = None,
    ) -> None:
        self._outcome = outcome or IngestionOutcome(status="IGNORED", reason="no_url")
        self._raise_on_submit = raise_on_submit
        self.submissions: list[tuple[str | None, int | str | None]] = []

    async def submit(self, raw_text: str | None, *, chat_id: int | str | None = None, source: str | None = None) -> IngestionOutcome:
        self.submissions.append((raw_text, chat_id))
        if self._raise_on_submit is not None:
            raise self._raise_on_submit
        return self._outcome
