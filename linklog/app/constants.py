"""Constants shared across modules."""
from __future__ import annotations


class EXTRACTION_STATUS:
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

    ALL = (SUCCESS, PARTIAL, FAILED)


class SUBMIT_STATUS:
    SAVED = "SAVED"
    QUEUED = "QUEUED"
    IGNORED = "IGNORED"


class SWEEP_OUTCOME:
    RESOLVED = "RESOLVED"
    PENDING = "PENDING"
    DROPPED = "DROPPED"
    SKIPPED = "SKIPPED"
    ERRORED = "ERRORED"


class SOURCE:
    TELEGRAM = "telegram"
    MANUAL = "manual"


class DROPPED_ENTRY_POLICY:
    LOG = "log"
    NOTIFY = "notify"


RETRY_KEY_PREFIX = "retry:"
MAX_RETRY_ATTEMPTS = 3
MAX_APPEND_ATTEMPTS = 3
DEFAULT_BOOKMARKS_PATH = "data/bookmarks.jsonl"
METADATA_TIMEOUT_SECONDS = 5.0


def retry_key(bookmark_id: str) -> str:
    return f"{RETRY_KEY_PREFIX}{bookmark_id}"
