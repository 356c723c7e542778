"""BookmarkLog: conditional appends over a versioned blob."""
from __future__ import annotations

import asyncio

import pytest

from linklog.app.domain.bookmark_log import PersistenceError, RevisionToken, parse_log, serialize_records
from linklog.app.infrastructure.storage.inmemory.in_memory_blob_store import InMemoryBlobStore, content_revision
from linklog.app.ports.versioned_store import BlobSnapshot, BlobStoreError
from tests.factories import (
    LOG_PATH,
    AlwaysConflictingStore,
    FailingBlobStore,
    ScriptedBlobStore,
    make_log,
    make_record,
)


async def _read_then_append(log, records):
    _, token = await log.read()
    return await log.append(records, token)


def test_missing_file_reads_as_empty_log():
    records, token = asyncio.run(make_log(InMemoryBlobStore()).read())
    assert records == []
    assert token.revision is None


def test_first_append_creates_file_ending_in_one_newline():
    store = InMemoryBlobStore()
    record = make_record()

    token = asyncio.run(_read_then_append(make_log(store), [record]))

    content = store.content(LOG_PATH)
    assert content == record.to_json_line() + "\n"
    assert token.revision == content_revision(content)


def test_append_keeps_existing_lines_byte_for_byte():
    legacy = '{"id": "legacy-1", "url": "https://old.example/", "note": "hand edited"}'
    store = InMemoryBlobStore({LOG_PATH: legacy})
    record = make_record()

    asyncio.run(_read_then_append(make_log(store), [record]))

    assert store.content(LOG_PATH) == legacy + "\n" + record.to_json_line() + "\n"


def test_malformed_lines_are_skipped_on_read_and_kept_on_append():
    good = make_record()
    store = InMemoryBlobStore({LOG_PATH: good.to_json_line() + "\nnot json\n\n"})
    log = make_log(store)

    records, _ = asyncio.run(log.read())
    assert [r.id for r in records] == [good.id]

    new = make_record()
    asyncio.run(_read_then_append(log, [new]))
    assert store.content(LOG_PATH) == good.to_json_line() + "\nnot json\n" + new.to_json_line() + "\n"


def test_stale_token_is_retried_on_fresh_state():
    a, b, c, x = (make_record(title=name) for name in "ABCX")
    store = ScriptedBlobStore([a, b])
    log = make_log(store)

    records, token = asyncio.run(log.read())
    assert token.revision == "r1"
    assert len(records) == 2

    store.intruder = [x]
    committed = asyncio.run(log.append([c], token))

    assert store.write_revisions == ["r1", "r2"]
    assert store.reads == 2
    assert committed.revision == "r3"
    records, token = asyncio.run(log.read())
    assert token.revision == "r3"
    assert [r.id for r in records] == [a.id, b.id, x.id, c.id]


def test_conflicts_on_every_attempt_raise_persistence_error():
    store = AlwaysConflictingStore()
    with pytest.raises(PersistenceError):
        asyncio.run(_read_then_append(make_log(store), [make_record()]))
    assert store.write_attempts == 3


def test_max_attempts_is_configurable():
    store = AlwaysConflictingStore()
    with pytest.raises(PersistenceError):
        asyncio.run(_read_then_append(make_log(store, max_attempts=5), [make_record()]))
    assert store.write_attempts == 5


def test_backend_failure_is_not_retried():
    store = FailingBlobStore(BlobStoreError("github returned 502"))
    with pytest.raises(PersistenceError):
        asyncio.run(_read_then_append(make_log(store), [make_record()]))
    assert store.write_attempts == 1


def test_slow_read_times_out_as_persistence_error():
    class SlowStore(InMemoryBlobStore):
        async def read_blob(self, path: str) -> BlobSnapshot:
            await asyncio.sleep(5)
            return await super().read_blob(path)

    with pytest.raises(PersistenceError):
        asyncio.run(make_log(SlowStore(), io_timeout_seconds=0.05).read())


def test_record_already_in_log_is_not_written_again():
    record = make_record()
    store = InMemoryBlobStore({LOG_PATH: serialize_records([record])})
    log = make_log(store)

    _, token = asyncio.run(log.read())
    result = asyncio.run(log.append([record], token))

    assert result == token
    assert store.write_count == 0


def test_record_that_landed_before_a_conflict_is_not_duplicated():
    record = make_record()
    store = ScriptedBlobStore([])
    store.intruder = [record]
    log = make_log(store)

    asyncio.run(_read_then_append(log, [record]))

    assert store.write_revisions == ["r1"]
    assert store.content.count(record.id) == 1


def test_empty_append_returns_base_token():
    token = RevisionToken(revision="r9", content="")
    assert asyncio.run(make_log(InMemoryBlobStore()).append([], token)) is token


def test_concurrent_appenders_all_land_exactly_once():
    seed = make_record(title="seed")
    store = InMemoryBlobStore({LOG_PATH: serialize_records([seed])})
    records = [make_record(title=f"writer {i}") for i in range(5)]

    async def writer(record):
        log = make_log(store, max_attempts=len(records))
        await _read_then_append(log, [record])

    async def run_all():
        await asyncio.gather(*(writer(r) for r in records))

    asyncio.run(run_all())

    ids = [r.id for r in parse_log(store.content(LOG_PATH))]
    assert ids[0] == seed.id
    assert sorted(ids[1:]) == sorted(r.id for r in records)
    assert len(set(ids)) == len(ids)
    assert store.conflict_count > 0
    assert store.content(LOG_PATH).endswith("}\n")


def test_token_without_content_reads_log_before_appending():
    existing = make_record()
    content = serialize_records([existing])
    store = InMemoryBlobStore({LOG_PATH: content})
    new = make_record()

    asyncio.run(make_log(store).append([new], RevisionToken(revision=content_revision(content))))

    assert store.content(LOG_PATH) == content + new.to_json_line() + "\n"
