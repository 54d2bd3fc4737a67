"""Kiosk runtime: wires storage, the remote client and the periodic triggers.

All triggers (taps, connectivity transitions, timer ticks) land on the one
asyncio loop. Flushes from the reconnect handler and from the autosync tick
go through the same ``QueueFlusher.flush`` and share its single-flight
guard.
"""

from __future__ import annotations

import logging

from feedback_kiosk.analytics.service import FeedbackAnalytics, PublicSummary
from feedback_kiosk.config import KioskSettings
from feedback_kiosk.core.clock import Clock, to_local, utc_now
from feedback_kiosk.core.events import Handler, Unsubscribe
from feedback_kiosk.core.logging import correlation_scope
from feedback_kiosk.errors import RemoteServiceError
from feedback_kiosk.kiosk.connectivity import ConnectivityMonitor
from feedback_kiosk.kiosk.flush import QueueFlusher
from feedback_kiosk.kiosk.messages import MessageBoard, MessageCatalog
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.kiosk.submission import SubmissionOrchestrator
from feedback_kiosk.models.feedback import Grade
from feedback_kiosk.models.kiosk import FlushReport, KioskMessage, SubmissionOutcome, SubmissionResult
from feedback_kiosk.protocols.remote import DataServiceClient
from feedback_kiosk.protocols.storage import KeyValueStore
from feedback_kiosk.queue.ids import IdGenerator
from feedback_kiosk.queue.pending import PendingQueue
from feedback_kiosk.scheduler.ap_scheduler import KioskScheduler

logger = logging.getLogger(__name__)


class KioskRuntime:
    def __init__(
        self,
        settings: KioskSettings,
        client: DataServiceClient,
        store: KeyValueStore,
        scheduler: KioskScheduler | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self._scheduler = scheduler or KioskScheduler()
        self._clock = clock

        tz = settings.tz
        catalog = MessageCatalog(settings.messages)
        self.queue = PendingQueue(store)
        self.board = MessageBoard(clock)
        self.connectivity = ConnectivityMonitor(probe=client.ping)
        recorder = FeedbackRecorder(client, IdGenerator(store), settings.remote.table, tz)
        self.orchestrator = SubmissionOrchestrator(
            recorder, self.queue, self.connectivity, self.board, catalog, clock
        )
        self.flusher = QueueFlusher(recorder, self.queue, self.board, catalog)
        self.analytics = FeedbackAnalytics(client, settings.remote.table, tz)
        self.summary: PublicSummary | None = None

        self.connectivity.on_connectivity_change(self._on_connectivity_change)

    @property
    def scheduler(self) -> KioskScheduler:
        return self._scheduler

    def on_pending_count_change(self, handler: Handler[int]) -> Unsubscribe:
        return self.queue.on_count_change(handler)

    def on_message(self, handler: Handler[KioskMessage]) -> Unsubscribe:
        return self.board.on_message(handler)

    async def submit(self, grade: Grade | str) -> SubmissionResult | None:
        with correlation_scope(kiosk_id=self.settings.kiosk_id):
            result = await self.orchestrator.submit(Grade(grade), self._clock())
        if result is not None and result.outcome is SubmissionOutcome.succeeded:
            await self.refresh_summary()
        return result

    async def flush(self) -> FlushReport:
        with correlation_scope(kiosk_id=self.settings.kiosk_id):
            return await self.flusher.flush()

    async def pending_count(self) -> int:
        return await self.queue.count()

    async def refresh_summary(self) -> PublicSummary | None:
        """Refresh the public summary; on failure the last snapshot is kept."""
        today = to_local(self._clock(), self.settings.tz).date()
        try:
            self.summary = await self.analytics.public_summary(today)
        except RemoteServiceError as exc:
            logger.debug("Summary refresh failed, keeping last snapshot: %r", exc)
        return self.summary

    async def _on_connectivity_change(self, online: bool) -> None:
        if not online:
            return
        await self.flush()
        await self.refresh_summary()

    async def _autosync_tick(self) -> None:
        await self.flush()

    async def _probe_tick(self) -> None:
        with correlation_scope(kiosk_id=self.settings.kiosk_id, operation="probe"):
            await self.connectivity.probe()

    async def start(self) -> None:
        """Register timers and try an initial sync."""
        pending = await self.queue.count()
        logger.info("Kiosk %s starting with %d pending entries", self.settings.kiosk_id, pending)

        sync = self.settings.sync
        self._scheduler.add_heartbeat("autosync", sync.flush_interval_s, self._autosync_tick)
        self._scheduler.add_heartbeat("connectivity", sync.probe_interval_s, self._probe_tick)
        self._scheduler.add_heartbeat("summary", sync.summary_refresh_s, self.refresh_summary)
        self._scheduler.start()

        await self._probe_tick()
        if self.connectivity.online:
            await self.flush()
        await self.refresh_summary()

    def stop(self) -> None:
        self._scheduler.stop()


__all__ = ["KioskRuntime"]
