"""Replay of the pending queue against the remote table.

One pass walks the queue in enqueue order and re-submits each tap with its
original time. Delivered entries are removed, transient failures stay for
the next pass, and the first access-policy rejection stops the pass: the
same policy would reject every later entry too.
"""

from __future__ import annotations

import logging

from feedback_kiosk.core.events import SingleFlight
from feedback_kiosk.core.logging import correlation_scope
from feedback_kiosk.errors import FailureKind, classify_failure
from feedback_kiosk.kiosk.messages import MessageBoard, MessageCatalog
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.models.feedback import QueuedEvent
from feedback_kiosk.models.kiosk import FlushReport
from feedback_kiosk.queue.pending import PendingQueue

logger = logging.getLogger(__name__)


class QueueFlusher:
    def __init__(
        self,
        recorder: FeedbackRecorder,
        queue: PendingQueue,
        board: MessageBoard,
        catalog: MessageCatalog | None = None,
    ) -> None:
        self._recorder = recorder
        self._queue = queue
        self._board = board
        self._catalog = catalog or MessageCatalog()
        self._guard = SingleFlight("flush")

    @property
    def busy(self) -> bool:
        return self._guard.busy

    async def flush(self) -> FlushReport:
        """Run one pass.

        An overlapping call returns a ``skipped`` report whose ``remaining``
        is the number of entries stored right now.
        """
        if not self._guard.try_enter():
            return FlushReport(skipped=True, remaining=len(await self._queue.load()))
        try:
            with correlation_scope(operation="flush"):
                return await self._flush()
        finally:
            self._guard.leave()

    async def _flush(self) -> FlushReport:
        snapshot = await self._queue.load()
        if not snapshot:
            return FlushReport()

        logger.info("Flushing %d pending feedback entries", len(snapshot))
        sent: list[QueuedEvent] = []
        attempted = 0
        denied = False

        for entry in snapshot:
            attempted += 1
            try:
                event = await self._recorder.build(entry.grade, entry.created_at)
                with correlation_scope(event_id=str(event.id)):
                    await self._recorder.persist(event)
            except Exception as exc:  # noqa: BLE001
                if classify_failure(exc) is FailureKind.auth_denied:
                    logger.error("Pending entry from %s rejected by access policy; stopping flush", entry.queued_at)
                    denied = True
                    break
                logger.warning("Pending entry from %s still failing: %r", entry.queued_at, exc)
                continue
            sent.append(entry)

        if sent:
            remaining = await self._queue.discard(sent)
        else:
            remaining = await self._queue.count()

        if denied:
            await self._board.publish(self._catalog.flush_denied())

        logger.info("Flush done: %d sent, %d remaining", len(sent), remaining)
        return FlushReport(attempted=attempted, sent=len(sent), remaining=remaining, denied=denied)


__all__ = ["QueueFlusher"]
