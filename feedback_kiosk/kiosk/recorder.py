from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from feedback_kiosk.core.clock import epoch_ms
from feedback_kiosk.models.feedback import ID_SUFFIX_SPACE, FeedbackEvent, Grade
from feedback_kiosk.protocols.remote import DataServiceClient
from feedback_kiosk.queue.ids import IdGenerator

logger = logging.getLogger(__name__)


class FeedbackRecorder:
    """Builds a feedback event for a tap instant and writes it to the remote table.

    Used by both the live submission path and the queue replay, so a replayed
    tap gets exactly the same record shape as a direct one.
    """

    def __init__(self, client: DataServiceClient, ids: IdGenerator, table: str, tz: ZoneInfo) -> None:
        self._client = client
        self._ids = ids
        self._table = table
        self._tz = tz

    async def build(self, grade: Grade, created_at: datetime) -> FeedbackEvent:
        event_id = await self._ids.mint_id(created_at)
        return FeedbackEvent.create(event_id, grade, created_at, self._tz)

    def build_unsequenced(self, grade: Grade, created_at: datetime) -> FeedbackEvent:
        """Event with suffix 0, used when the suffix state cannot be read or written."""
        return FeedbackEvent.create(epoch_ms(created_at) * ID_SUFFIX_SPACE, grade, created_at, self._tz)

    async def persist(self, event: FeedbackEvent) -> dict[str, object]:
        row = await self._client.insert(self._table, event.to_record())
        logger.debug("Stored feedback %d (%s)", event.id, event.grade.value)
        return row


__all__ = ["FeedbackRecorder"]
