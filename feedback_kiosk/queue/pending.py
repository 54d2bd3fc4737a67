"""Local durable queue of feedback taps that could not reach the remote store.

The whole queue lives under one key as a JSON array, in enqueue order:
``[{"grau_satisfacao": "...", "queuedAt": "..."}, ...]``. Every
read-modify-write runs under ``self.lock`` because store calls suspend, and
a submit appending while a flush commits would otherwise lose an entry.
"""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import ValidationError

from feedback_kiosk.core.events import EventEmitter, Handler, Unsubscribe
from feedback_kiosk.models.feedback import QueuedEvent
from feedback_kiosk.protocols.storage import KeyValueStore

logger = logging.getLogger(__name__)

QUEUE_KEY = "feedback_queue_v1"


def decode_queue(raw: str | None) -> list[QueuedEvent]:
    """Parse stored queue JSON. Corrupt content degrades to an empty queue."""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Pending queue content is not valid JSON; treating as empty")
        return []
    if not isinstance(items, list):
        logger.warning("Pending queue content is not a list; treating as empty")
        return []

    entries: list[QueuedEvent] = []
    for index, item in enumerate(items):
        try:
            entries.append(QueuedEvent.model_validate(item))
        except ValidationError:
            logger.warning("Dropping unreadable pending entry at position %d", index)
    return entries


def encode_queue(entries: list[QueuedEvent]) -> str:
    return json.dumps([entry.to_storage() for entry in entries], ensure_ascii=False)


class PendingQueue:
    def __init__(self, store: KeyValueStore, key: str = QUEUE_KEY) -> None:
        self._store = store
        self._key = key
        self.lock = asyncio.Lock()
        self._count_changed: EventEmitter[int] = EventEmitter("pending_count")
        self._last_count: int | None = None

    def on_count_change(self, handler: Handler[int]) -> Unsubscribe:
        return self._count_changed.subscribe(handler)

    async def load(self) -> list[QueuedEvent]:
        return decode_queue(await self._store.get(self._key))

    async def save(self, entries: list[QueuedEvent]) -> None:
        await self._store.set(self._key, encode_queue(entries))
        await self._publish(len(entries))

    async def count(self) -> int:
        entries = await self.load()
        await self._publish(len(entries))
        return len(entries)

    async def append(self, entry: QueuedEvent) -> int:
        """Add one entry at the tail and return the new queue length."""
        async with self.lock:
            entries = await self.load()
            entries.append(entry)
            await self.save(entries)
        logger.info("Queued %s tap from %s (%d pending)", entry.grade.value, entry.queued_at, len(entries))
        return len(entries)

    async def discard(self, sent: list[QueuedEvent]) -> int:
        """Remove delivered entries and return what is left.

        Re-reads the stored queue so entries appended since the caller's
        snapshot survive. Each delivered entry removes one matching entry,
        earliest first.
        """
        async with self.lock:
            entries = await self.load()
            for done in sent:
                for index, entry in enumerate(entries):
                    if entry == done:
                        del entries[index]
                        break
            await self.save(entries)
        return len(entries)

    async def _publish(self, count: int) -> None:
        if count == self._last_count:
            return
        self._last_count = count
        await self._count_changed.emit(count)


__all__ = ["QUEUE_KEY", "PendingQueue", "decode_queue", "encode_queue"]
