"""Queue replay: ordering, partial delivery and the access-policy stop."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from feedback_kiosk.kiosk.flush import QueueFlusher
from feedback_kiosk.kiosk.messages import FLUSH_DENIED_TEXT, MessageBoard
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.models.feedback import Grade, QueuedEvent
from feedback_kiosk.models.kiosk import FlushReport
from feedback_kiosk.queue.ids import IdGenerator
from feedback_kiosk.queue.pending import QUEUE_KEY, PendingQueue, encode_queue

from tests.fakes import InMemoryKeyValueStore, ManualClock, ScriptedDataService, denied_error, transient_error

T0 = datetime(2024, 5, 6, 9, 0, 0, tzinfo=UTC)


def _entry(grade: Grade, minutes: int) -> QueuedEvent:
    return QueuedEvent.from_tap(grade, T0 + timedelta(minutes=minutes))


async def _fill(queue: PendingQueue) -> list[QueuedEvent]:
    entries = [
        _entry(Grade.very_satisfied, 0),
        _entry(Grade.satisfied, 5),
        _entry(Grade.unsatisfied, 10),
    ]
    for entry in entries:
        await queue.append(entry)
    return entries


class TestFlush:
    async def test_empty_queue_does_nothing(
        self,
        flusher: QueueFlusher,
        remote: ScriptedDataService,
        store: InMemoryKeyValueStore,
    ) -> None:
        report = await flusher.flush()

        assert report == FlushReport()
        assert remote.insert_calls == []
        assert store.writes == []

    async def test_all_delivered_empties_queue(
        self,
        flusher: QueueFlusher,
        queue: PendingQueue,
        remote: ScriptedDataService,
    ) -> None:
        counts: list[int] = []
        await _fill(queue)
        queue.on_count_change(counts.append)

        report = await flusher.flush()

        assert report == FlushReport(attempted=3, sent=3, remaining=0)
        assert await queue.load() == []
        assert counts == [0]
        assert [call["grau_satisfacao"] for call in remote.insert_calls] == [
            "muito_satisfeito",
            "satisfeito",
            "insatisfeito",
        ]

    async def test_replay_keeps_original_tap_time(
        self,
        flusher: QueueFlusher,
        queue: PendingQueue,
        remote: ScriptedDataService,
    ) -> None:
        await queue.append(_entry(Grade.satisfied, 0))

        await flusher.flush()

        record = remote.insert_calls[0]
        assert record["created_at"] == "2024-05-06T09:00:00.000Z"
        assert record["hora"] == "10:00:00"
        assert record["data"] == "2024-05-06"
        assert record["id"] // 1000 == int(T0.timestamp() * 1000)  # type: ignore[operator]

    async def test_denied_stops_pass_and_keeps_the_rest(
        self,
        flusher: QueueFlusher,
        queue: PendingQueue,
        remote: ScriptedDataService,
        board: MessageBoard,
    ) -> None:
        entries = await _fill(queue)
        remote.insert_script = [None, denied_error()]

        report = await flusher.flush()

        assert report == FlushReport(attempted=2, sent=1, remaining=2, denied=True)
        assert len(remote.insert_calls) == 2
        assert await queue.load() == entries[1:]
        message = board.current()
        assert message is not None
        assert message.kind == "error"
        assert message.text == FLUSH_DENIED_TEXT

    async def test_transient_failure_moves_on(
        self,
        flusher: QueueFlusher,
        queue: PendingQueue,
        remote: ScriptedDataService,
        board: MessageBoard,
    ) -> None:
        entries = await _fill(queue)
        remote.insert_script = [transient_error(), None, transient_error()]

        report = await flusher.flush()

        assert report == FlushReport(attempted=3, sent=1, remaining=2)
        assert await queue.load() == [entries[0], entries[2]]
        assert board.current() is None

    async def test_nothing_delivered_leaves_storage_untouched(
        self,
        flusher: QueueFlusher,
        queue: PendingQueue,
        remote: ScriptedDataService,
        store: InMemoryKeyValueStore,
    ) -> None:
        await _fill(queue)
        before = store.data[QUEUE_KEY]
        remote.insert_script = [transient_error()] * 3

        report = await flusher.flush()

        assert report.remaining == 3
        assert store.data[QUEUE_KEY] == before


class _GatedService(ScriptedDataService):
    """Blocks the first insert until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self.entered = asyncio.Event()

    async def insert(self, table: str, record: dict[str, object]) -> dict[str, object]:
        if not self.entered.is_set():
            self.entered.set()
            await self.release.wait()
        return await super().insert(table, record)


class TestConcurrency:
    def _flusher(self, service: ScriptedDataService, store: InMemoryKeyValueStore) -> tuple[QueueFlusher, PendingQueue]:
        queue = PendingQueue(store)
        recorder = FeedbackRecorder(service, IdGenerator(store), "feedback", ZoneInfo("Europe/Lisbon"))
        return QueueFlusher(recorder, queue, MessageBoard(ManualClock())), queue

    async def test_tap_queued_during_flush_survives(self, store: InMemoryKeyValueStore) -> None:
        service = _GatedService()
        flusher, queue = self._flusher(service, store)
        await _fill(queue)

        running = asyncio.create_task(flusher.flush())
        await service.entered.wait()
        late = _entry(Grade.unsatisfied, 60)
        await queue.append(late)
        service.release.set()
        report = await running

        assert report.sent == 3
        assert report.remaining == 1
        assert await queue.load() == [late]

    async def test_overlapping_flush_is_skipped(self, store: InMemoryKeyValueStore) -> None:
        service = _GatedService()
        flusher, queue = self._flusher(service, store)
        await _fill(queue)

        running = asyncio.create_task(flusher.flush())
        await service.entered.wait()
        assert flusher.busy

        skipped = await flusher.flush()
        assert skipped.skipped
        assert skipped.remaining == 3

        service.release.set()
        report = await running
        assert report.sent == 3
        assert len(service.insert_calls) == 3

    async def test_skipped_report_counts_stored_entries(self) -> None:
        # Entries left by a previous run: nothing has counted them yet.
        entries = [_entry(Grade.satisfied, 0), _entry(Grade.unsatisfied, 1)]
        store = InMemoryKeyValueStore({QUEUE_KEY: encode_queue(entries)})
        service = _GatedService()
        flusher, _ = self._flusher(service, store)

        running = asyncio.create_task(flusher.flush())
        await service.entered.wait()

        skipped = await flusher.flush()
        assert skipped.skipped
        assert skipped.remaining == 2

        service.release.set()
        assert (await running).remaining == 0
