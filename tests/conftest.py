from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest
from feedback_kiosk.kiosk.connectivity import ConnectivityMonitor
from feedback_kiosk.kiosk.flush import QueueFlusher
from feedback_kiosk.kiosk.messages import MessageBoard, MessageCatalog
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.kiosk.submission import SubmissionOrchestrator
from feedback_kiosk.queue.ids import IdGenerator
from feedback_kiosk.queue.pending import PendingQueue

from tests.fakes import InMemoryKeyValueStore, ManualClock, ScriptedDataService

LISBON = ZoneInfo("Europe/Lisbon")


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def remote() -> ScriptedDataService:
    return ScriptedDataService()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def queue(store: InMemoryKeyValueStore) -> PendingQueue:
    return PendingQueue(store)


@pytest.fixture
def recorder(remote: ScriptedDataService, store: InMemoryKeyValueStore) -> FeedbackRecorder:
    return FeedbackRecorder(remote, IdGenerator(store), "feedback", LISBON)


@pytest.fixture
def connectivity(remote: ScriptedDataService) -> ConnectivityMonitor:
    return ConnectivityMonitor(probe=remote.ping)


@pytest.fixture
def board(clock: ManualClock) -> MessageBoard:
    return MessageBoard(clock)


@pytest.fixture
def orchestrator(
    recorder: FeedbackRecorder,
    queue: PendingQueue,
    connectivity: ConnectivityMonitor,
    board: MessageBoard,
    clock: ManualClock,
) -> SubmissionOrchestrator:
    return SubmissionOrchestrator(recorder, queue, connectivity, board, MessageCatalog(), clock)


@pytest.fixture
def flusher(recorder: FeedbackRecorder, queue: PendingQueue, board: MessageBoard) -> QueueFlusher:
    return QueueFlusher(recorder, queue, board, MessageCatalog())
