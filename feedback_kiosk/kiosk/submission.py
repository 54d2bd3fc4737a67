"""Submission of a single satisfaction tap.

Every tap is first written straight to the remote table, whatever the
connectivity flag says, because the flag can report offline while the
network works. The outcome is then one of:

- SUCCEEDED: the row was stored;
- DENIED: the store rejected it on access policy (401/403, ``42501``,
  ``permission-denied``). Retrying cannot help, so the tap is discarded
  and the operator gets a long-lived message;
- QUEUED: anything else. The tap goes to the local pending queue with its
  original time and a later flush delivers it;
- FAILED: the write failed and the local queue could not take the tap
  either. The user is told to try again.

``submit`` never raises past its boundary. When the id suffix state cannot
be stored the tap still goes out, with suffix 0.
"""

from __future__ import annotations

import logging
from datetime import datetime

from feedback_kiosk.core.clock import Clock, utc_now
from feedback_kiosk.core.events import SingleFlight
from feedback_kiosk.core.logging import correlation_scope
from feedback_kiosk.errors import FailureKind, classify_failure
from feedback_kiosk.kiosk.connectivity import ConnectivityMonitor
from feedback_kiosk.kiosk.messages import MessageBoard, MessageCatalog
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.models.feedback import FeedbackEvent, Grade, QueuedEvent
from feedback_kiosk.models.kiosk import KioskMessage, SubmissionOutcome, SubmissionResult
from feedback_kiosk.queue.pending import PendingQueue

logger = logging.getLogger(__name__)


class SubmissionOrchestrator:
    def __init__(
        self,
        recorder: FeedbackRecorder,
        queue: PendingQueue,
        connectivity: ConnectivityMonitor,
        board: MessageBoard,
        catalog: MessageCatalog | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._recorder = recorder
        self._queue = queue
        self._connectivity = connectivity
        self._board = board
        self._catalog = catalog or MessageCatalog()
        self._clock = clock
        self._guard = SingleFlight("submit")

    @property
    def busy(self) -> bool:
        return self._guard.busy

    async def submit(self, grade: Grade, click_time: datetime | None = None) -> SubmissionResult | None:
        """Record one tap. Returns None when another tap is still being submitted."""
        if not self._guard.try_enter():
            return None
        try:
            tapped_at = click_time or self._clock()
            with correlation_scope(operation="submit"):
                return await self._submit(Grade(grade), tapped_at)
        finally:
            self._guard.leave()

    async def _submit(self, grade: Grade, click_time: datetime) -> SubmissionResult:
        believed_online = self._connectivity.online
        event = await self._build_event(grade, click_time)

        with correlation_scope(event_id=str(event.id)):
            try:
                await self._recorder.persist(event)
            except Exception as exc:  # noqa: BLE001
                if classify_failure(exc) is FailureKind.auth_denied:
                    logger.error("Feedback rejected by access policy, not queued: %r", exc)
                    return await self._finish(SubmissionOutcome.denied, self._catalog.denied(), event)

                logger.warning("Feedback write failed, queueing for later sync: %r", exc)
                try:
                    await self._queue.append(QueuedEvent.from_tap(grade, click_time))
                except Exception:  # noqa: BLE001
                    logger.exception("Local queue unavailable; tap could not be kept")
                    return await self._finish(SubmissionOutcome.failed, self._catalog.storage_failed(), event)
                return await self._finish(SubmissionOutcome.queued, self._catalog.queued(), event)

            message = self._catalog.thank_you() if believed_online else self._catalog.recorded_while_offline()
            return await self._finish(SubmissionOutcome.succeeded, message, event)

    async def _build_event(self, grade: Grade, click_time: datetime) -> FeedbackEvent:
        try:
            return await self._recorder.build(grade, click_time)
        except Exception:  # noqa: BLE001
            logger.exception("Id suffix state unavailable; using suffix 0")
            return self._recorder.build_unsequenced(grade, click_time)

    async def _finish(
        self,
        outcome: SubmissionOutcome,
        message: KioskMessage,
        event: FeedbackEvent,
    ) -> SubmissionResult:
        await self._board.publish(message)
        logger.info("Submission %s for %s tap", outcome.value, event.grade.value)
        return SubmissionResult(outcome=outcome, message=message, event=event)


__all__ = ["SubmissionOrchestrator"]
