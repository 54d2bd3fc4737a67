"""Tests for the local pending queue: fail-soft loading, ordering and commits."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from feedback_kiosk.models.feedback import Grade, QueuedEvent
from feedback_kiosk.persistence.kv_store import SQLiteKeyValueStore
from feedback_kiosk.queue.pending import QUEUE_KEY, PendingQueue, decode_queue, encode_queue

from tests.fakes import InMemoryKeyValueStore

T0 = datetime(2024, 5, 6, 14, 30, 15, tzinfo=UTC)


def _entry(grade: Grade = Grade.satisfied, seconds: int = 0) -> QueuedEvent:
    return QueuedEvent.from_tap(grade, T0 + timedelta(seconds=seconds))


class TestDecode:
    @pytest.mark.parametrize("raw", [None, "", "not json", "{}", '"text"', "42"])
    def test_unusable_content_is_empty(self, raw: str | None) -> None:
        assert decode_queue(raw) == []

    def test_unreadable_entries_are_skipped(self) -> None:
        raw = json.dumps(
            [
                {"grau_satisfacao": "satisfeito", "queuedAt": "2024-05-06T14:30:15.000Z"},
                {"grau_satisfacao": "furioso", "queuedAt": "2024-05-06T14:30:16.000Z"},
                {"grau_satisfacao": "insatisfeito"},
                {"grau_satisfacao": "insatisfeito", "queuedAt": "yesterday"},
            ]
        )
        entries = decode_queue(raw)
        assert [e.grade for e in entries] == [Grade.satisfied]

    def test_storage_format_uses_wire_names(self) -> None:
        encoded = encode_queue([_entry(Grade.very_satisfied)])
        assert json.loads(encoded) == [
            {"grau_satisfacao": "muito_satisfeito", "queuedAt": "2024-05-06T14:30:15.000Z"}
        ]

    def test_round_trip_is_byte_identical(self) -> None:
        original = encode_queue([_entry(Grade.satisfied, 0), _entry(Grade.unsatisfied, 3)])
        assert encode_queue(decode_queue(original)) == original


class TestPendingQueue:
    async def test_append_keeps_enqueue_order(self, queue: PendingQueue) -> None:
        await queue.append(_entry(Grade.very_satisfied, 0))
        await queue.append(_entry(Grade.satisfied, 1))
        length = await queue.append(_entry(Grade.unsatisfied, 2))

        assert length == 3
        assert [e.grade for e in await queue.load()] == [
            Grade.very_satisfied,
            Grade.satisfied,
            Grade.unsatisfied,
        ]

    async def test_discard_removes_only_delivered_entries(self, queue: PendingQueue) -> None:
        first, second, third = _entry(seconds=0), _entry(seconds=1), _entry(seconds=2)
        for entry in (first, second, third):
            await queue.append(entry)

        remaining = await queue.discard([first, third])

        assert remaining == 1
        assert await queue.load() == [second]

    async def test_discard_keeps_entries_appended_after_snapshot(self, queue: PendingQueue) -> None:
        first = _entry(seconds=0)
        await queue.append(first)
        snapshot = await queue.load()

        late = _entry(Grade.unsatisfied, seconds=30)
        await queue.append(late)
        await queue.discard(snapshot)

        assert await queue.load() == [late]

    async def test_discard_removes_one_duplicate_per_delivery(self, queue: PendingQueue) -> None:
        twin = _entry(seconds=0)
        await queue.append(twin)
        await queue.append(twin)

        assert await queue.discard([twin]) == 1

    async def test_corrupt_storage_reads_as_empty(self) -> None:
        store = InMemoryKeyValueStore({QUEUE_KEY: "[{broken"})
        queue = PendingQueue(store)
        assert await queue.count() == 0
        await queue.append(_entry())
        assert await queue.count() == 1

    async def test_count_changes_are_published(self, queue: PendingQueue) -> None:
        seen: list[int] = []
        unsubscribe = queue.on_count_change(seen.append)

        entry = _entry()
        await queue.append(entry)
        await queue.append(_entry(seconds=5))
        await queue.discard([entry])
        unsubscribe()
        await queue.append(_entry(seconds=9))

        assert seen == [1, 2, 1]

    async def test_survives_restart_with_sqlite(self, tmp_path: Path) -> None:
        db_path = tmp_path / "kiosk.db"
        store = SQLiteKeyValueStore(db_path)
        await store.initialize()
        await PendingQueue(store).append(_entry(Grade.very_satisfied))

        reopened = SQLiteKeyValueStore(db_path)
        await reopened.initialize()
        entries = await PendingQueue(reopened).load()

        assert [e.grade for e in entries] == [Grade.very_satisfied]
        assert entries[0].queued_at == "2024-05-06T14:30:15.000Z"
