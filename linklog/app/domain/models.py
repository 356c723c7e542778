"""Domain models."""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from urllib.parse import urlparse

from linklog.app.constants import EXTRACTION_STATUS

# Tolerated clock skew between writers when checking that timestamps are not in the future.
MAX_CLOCK_SKEW = timedelta(minutes=5)

_RECORD_KEYS = (
    "id",
    "url",
    "title",
    "description",
    "image",
    "tags",
    "source",
    "timestamp",
    "chat_id",
    "extraction_status",
)


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a `Z` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _normalize_tags(tags: Iterable[str] | None) -> tuple[str, ...]:
    if not tags:
        return ()
    return tuple(sorted({str(tag).strip() for tag in tags if str(tag).strip()}))


@dataclass(frozen=True)
class ResolvedMetadata:
    """Result of a metadata resolution. `partial` means enrichment was skipped."""

    canonical_url: str
    title: str | None = None
    description: str | None = None
    image: str | None = None
    partial: bool = False

    @staticmethod
    def partial_for(url: str) -> "ResolvedMetadata":
        return ResolvedMetadata(canonical_url=url, partial=True)


@dataclass(frozen=True)
class BookmarkRecord:
    """One entry of the append-only bookmark log (value object).

    Keys not known to this model are kept in `extras` so a record read from the log
    serializes back to the same fields.
    """

    id: str
    url: str
    source: str
    timestamp: str
    extraction_status: str = EXTRACTION_STATUS.SUCCESS
    title: str | None = None
    description: str | None = None
    image: str | None = None
    tags: tuple[str, ...] = ()
    chat_id: int | str | None = None
    extras: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise TypeError("bookmark.id must be a non-empty str")
        if not isinstance(self.url, str):
            raise TypeError("bookmark.url must be a str")
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"bookmark.url must be an absolute http(s) URL: {self.url!r}")
        if not isinstance(self.source, str) or not self.source:
            raise TypeError("bookmark.source must be a non-empty str")
        if self.extraction_status not in EXTRACTION_STATUS.ALL:
            raise ValueError(f"bookmark.extraction_status must be one of {EXTRACTION_STATUS.ALL}")
        try:
            created = parse_timestamp(self.timestamp)
        except (AttributeError, TypeError, ValueError) as exc:
            raise ValueError(f"bookmark.timestamp is not ISO-8601: {self.timestamp!r}") from exc
        if created > datetime.now(timezone.utc) + MAX_CLOCK_SKEW:
            raise ValueError(f"bookmark.timestamp is in the future: {self.timestamp}")
        object.__setattr__(self, "tags", _normalize_tags(self.tags))

    @staticmethod
    def create(
        url: str,
        *,
        source: str,
        metadata: ResolvedMetadata | None = None,
        extraction_status: str = EXTRACTION_STATUS.SUCCESS,
        chat_id: int | str | None = None,
        tags: Iterable[str] | None = None,
    ) -> "BookmarkRecord":
        """Build a new record with a fresh id and the current timestamp."""
        if metadata is None:
            return BookmarkRecord(
                id=str(uuid.uuid4()),
                url=url,
                source=source,
                timestamp=utc_now_iso(),
                extraction_status=extraction_status,
                tags=tuple(tags or ()),
                chat_id=chat_id,
            )
        return BookmarkRecord(
            id=str(uuid.uuid4()),
            url=metadata.canonical_url or url,
            source=source,
            timestamp=utc_now_iso(),
            extraction_status=extraction_status,
            title=metadata.title or None,
            description=metadata.description or None,
            image=metadata.image or None,
            tags=tuple(tags or ()),
            chat_id=chat_id,
        )

    @property
    def display_name(self) -> str:
        return self.title or self.url

    def to_dict(self) -> dict[str, Any]:
        """Serialisable dict; absent optional fields are omitted."""
        payload: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "tags": list(self.tags),
            "source": self.source,
            "timestamp": self.timestamp,
            "chat_id": self.chat_id,
            "extraction_status": self.extraction_status,
        }
        payload = {key: value for key, value in payload.items() if value is not None}
        for key, value in self.extras.items():
            payload.setdefault(key, value)
        return payload

    def to_json_line(self) -> str:
        """Compact single-line JSON (no trailing newline)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "BookmarkRecord":
        if not isinstance(data, dict):
            raise TypeError("bookmark must be a JSON object")
        extras = {key: value for key, value in data.items() if key not in _RECORD_KEYS}
        return BookmarkRecord(
            id=data.get("id", ""),
            url=data.get("url", ""),
            source=data.get("source") or "unknown",
            timestamp=data.get("timestamp", ""),
            extraction_status=data.get("extraction_status") or EXTRACTION_STATUS.SUCCESS,
            title=data.get("title") or None,
            description=data.get("description") or None,
            image=data.get("image") or None,
            tags=tuple(data.get("tags") or ()),
            chat_id=data.get("chat_id"),
            extras=extras,
        )


@dataclass(frozen=True)
class RetryEntry:
    """A bookmark whose write is still pending, as stored in the retry queue."""

    bookmark: BookmarkRecord
    attempts: int
    last_error: str
    created_at: str
    last_attempt: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.attempts, int) or self.attempts < 1:
            raise ValueError("retry.attempts must be a positive int")

    @staticmethod
    def first_failure(bookmark: BookmarkRecord, error: str) -> "RetryEntry":
        now = utc_now_iso()
        return RetryEntry(bookmark=bookmark, attempts=1, last_error=error, created_at=now, last_attempt=now)

    def after_failed_attempt(self, error: str) -> "RetryEntry":
        return replace(self, attempts=self.attempts + 1, last_error=error, last_attempt=utc_now_iso())

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "bookmark": self.bookmark.to_dict(),
            "attempts": int(self.attempts),
            "lastError": self.last_error,
            "createdAt": self.created_at,
        }
        if self.last_attempt is not None:
            payload["lastAttempt"] = self.last_attempt
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RetryEntry":
        if not isinstance(data, dict) or "bookmark" not in data:
            raise ValueError("retry entry must be an object with a bookmark")
        return RetryEntry(
            bookmark=BookmarkRecord.from_dict(data["bookmark"]),
            attempts=int(data.get("attempts", 1)),
            last_error=str(data.get("lastError", "")),
            created_at=str(data.get("createdAt") or utc_now_iso()),
            last_attempt=data.get("lastAttempt"),
        )
