import asyncio
import json
import uuid

import pytest

from examgate.client.drafts import AnswerDraftStore
from examgate.client.records import InProgress, SessionKey, SessionRecordStore
from examgate.client.storage import JsonFileStore, MemoryStore

KEY = SessionKey(uuid.uuid4(), uuid.uuid4())


def make_drafts(question_count=5, debounce=0.01, store=None):
    records = SessionRecordStore(store or MemoryStore())
    return records, AnswerDraftStore(records, KEY, question_count, debounce_seconds=debounce)


def test_stored_answers_of_wrong_length_become_blank():
    records, drafts = make_drafts(question_count=5)
    drafts.persist(answers=[0, 1, 2])

    assert drafts.load() == [-1, -1, -1, -1, -1]


def test_nothing_saved_loads_as_none():
    _, drafts = make_drafts()
    assert drafts.load() is None


def test_without_event_loop_every_change_is_written():
    records, drafts = make_drafts(question_count=3)
    drafts.set(0, 2)
    drafts.set(2, 1)

    assert drafts.writes == 2
    assert records.read(KEY).answers == [2, -1, 1]
    assert drafts.answered_count == 2


def test_debounce_coalesces_a_burst_into_one_write():
    records, drafts = make_drafts(question_count=3, debounce=0.05)

    async def burst():
        drafts.set(0, 1)
        drafts.set(1, 1)
        drafts.set(2, 0)
        assert drafts.writes == 0
        assert drafts.has_pending
        await asyncio.sleep(0.2)

    asyncio.run(burst())
    assert drafts.writes == 1
    assert records.read(KEY).answers == [1, 1, 0]
    assert not drafts.has_pending


def test_flush_writes_pending_changes_immediately():
    records, drafts = make_drafts(question_count=2, debounce=10)

    async def change_then_flush():
        drafts.set(1, 3)
        drafts.flush()

    asyncio.run(change_then_flush())
    assert drafts.writes == 1
    assert records.read(KEY).answers == [-1, 3]


def test_persist_keeps_the_rest_of_the_record():
    records, drafts = make_drafts(question_count=2)
    record = records.read_or_new(KEY)
    record.phase = InProgress(started_at="2024-05-01T08:00:00Z")
    records.write(record)

    drafts.set(0, 1)
    stored = records.read(KEY)
    assert isinstance(stored.phase, InProgress)
    assert stored.answers == [1, -1]


def test_invalid_index_and_option_are_rejected():
    _, drafts = make_drafts(question_count=2)
    with pytest.raises(IndexError):
        drafts.set(2, 0)
    with pytest.raises(ValueError):
        drafts.set(0, -2)


def test_corrupt_record_is_discarded(tmp_path):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({KEY.storage_key: "{not json"}))
    store = JsonFileStore(path)
    records, drafts = make_drafts(store=store)

    assert drafts.load() is None
    assert store.get(KEY.storage_key) is None


def test_unreadable_store_file_starts_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("[1, 2")
    store = JsonFileStore(path)
    assert store.get(KEY.storage_key) is None

    store.set("k", "v")
    assert JsonFileStore(path).get("k") == "v"


def test_record_stored_under_the_wrong_key_is_discarded():
    store = MemoryStore()
    records, drafts = make_drafts(store=store)
    other = SessionKey(uuid.uuid4(), None)
    record = records.read_or_new(other)
    record.answers = [0, 0, 0, 0, 0]
    store.set(KEY.storage_key, record.model_dump_json())

    assert drafts.load() is None
    assert KEY.storage_key not in store.keys()
