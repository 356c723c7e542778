"""SweepService: replaying parked bookmarks into the log."""
from __future__ import annotations

import asyncio

from linklog.app.application.operator_alerts import OperatorAlerter
from linklog.app.application.sweep_service import SweepService
from linklog.app.constants import retry_key
from linklog.app.domain.bookmark_log import parse_log, serialize_records
from linklog.app.domain.models import RetryEntry
from linklog.app.infrastructure.queue.inmemory.in_memory_retry_queue import InMemoryRetryQueue
from linklog.app.infrastructure.storage.inmemory.in_memory_blob_store import InMemoryBlobStore
from linklog.app.ports.retry_queue import RetryQueueError
from linklog.app.ports.versioned_store import BlobStoreError
from tests.factories import LOG_PATH, CapturingReplySender, FailingBlobStore, make_log, make_record


def _park(queue: InMemoryRetryQueue, record, attempts: int = 1) -> str:
    key = retry_key(record.id)
    entry = RetryEntry(
        bookmark=record,
        attempts=attempts,
        last_error="github returned 502",
        created_at="2024-05-01T10:00:00.000Z",
    )
    asyncio.run(queue.put(key, entry))
    return key


def test_successful_replay_writes_stored_record_and_deletes_key():
    store, queue = InMemoryBlobStore(), InMemoryRetryQueue()
    record = make_record(title="Parked page", extraction_status="partial", chat_id=7)
    key = _park(queue, record)

    report = asyncio.run(SweepService(queue, make_log(store)).run())

    assert report.resolved == [key]
    assert asyncio.run(queue.list("retry:")) == []
    assert store.content(LOG_PATH) == record.to_json_line() + "\n"


def test_failing_entry_goes_1_2_3_then_is_dropped():
    store = FailingBlobStore(BlobStoreError("github returned 502"))
    queue = InMemoryRetryQueue()
    key = _park(queue, make_record())
    sweep = SweepService(queue, make_log(store))

    assert asyncio.run(sweep.run()).pending == [key]
    assert asyncio.run(queue.get(key)).attempts == 2

    assert asyncio.run(sweep.run()).pending == [key]
    assert asyncio.run(queue.get(key)).attempts == 3

    assert asyncio.run(sweep.run()).dropped == [key]
    assert asyncio.run(queue.get(key)) is None

    assert asyncio.run(sweep.run()).total == 0
    assert store.write_attempts == 3


def test_failed_attempt_records_latest_error():
    store = FailingBlobStore(BlobStoreError("github returned 503"))
    queue = InMemoryRetryQueue()
    key = _park(queue, make_record())

    asyncio.run(SweepService(queue, make_log(store)).run())

    entry = asyncio.run(queue.get(key))
    assert "503" in entry.last_error
    assert entry.last_attempt is not None


def test_broken_entry_does_not_stop_the_others():
    store, queue = InMemoryBlobStore(), InMemoryRetryQueue()
    queue.put_raw("retry:a-broken", "not json")
    good = make_record(id="b-record")
    good_key = _park(queue, good)

    report = asyncio.run(SweepService(queue, make_log(store)).run())

    assert report.errored == ["retry:a-broken"]
    assert report.resolved == [good_key]
    assert [r.id for r in parse_log(store.content(LOG_PATH))] == ["b-record"]
    assert asyncio.run(queue.list("retry:")) == ["retry:a-broken"]


def test_key_gone_since_listing_is_skipped():
    class VanishingQueue(InMemoryRetryQueue):
        async def list(self, prefix: str) -> list[str]:
            return ["retry:already-handled"]

    report = asyncio.run(SweepService(VanishingQueue(), make_log(InMemoryBlobStore())).run())
    assert report.skipped == ["retry:already-handled"]


def test_record_already_in_log_resolves_without_writing():
    record = make_record()
    store = InMemoryBlobStore({LOG_PATH: serialize_records([record])})
    queue = InMemoryRetryQueue()
    key = _park(queue, record)

    report = asyncio.run(SweepService(queue, make_log(store)).run())

    assert report.resolved == [key]
    assert store.write_count == 0
    assert store.content(LOG_PATH).count(record.id) == 1


def test_listing_failure_returns_empty_report():
    class UnlistableQueue(InMemoryRetryQueue):
        async def list(self, prefix: str) -> list[str]:
            raise RetryQueueError("mongo unavailable")

    report = asyncio.run(SweepService(UnlistableQueue(), make_log(InMemoryBlobStore())).run())
    assert report.total == 0


def test_dropped_entry_alerts_operator_under_notify_policy():
    store = FailingBlobStore(BlobStoreError("github returned 502"))
    queue = InMemoryRetryQueue()
    record = make_record(url="https://example.com/lost")
    key = _park(queue, record, attempts=3)
    sender = CapturingReplySender()
    alerter = OperatorAlerter("notify", reply_sender=sender, chat_id=99)

    report = asyncio.run(SweepService(queue, make_log(store), alerter=alerter).run())

    assert report.dropped == [key]
    assert len(sender.sent) == 1
    chat_id, text = sender.sent[0]
    assert chat_id == 99
    assert "https://example.com/lost" in text
    assert key in text


def test_bookmark_log_can_be_passed_by_keyword():
    store, queue = InMemoryBlobStore(), InMemoryRetryQueue()
    record = make_record()
    key = _park(queue, record)

    report = asyncio.run(SweepService(queue, bookmark_log=make_log(store)).run())

    assert report.resolved == [key]
