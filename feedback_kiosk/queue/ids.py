"""Numeric feedback ids: 13 digits of wall-clock milliseconds + a 3-digit suffix.

``id = ms * 1000 + suffix``. The suffix counts taps within one millisecond
and is persisted, so a restart in the middle of a burst continues from the
last suffix instead of reissuing 0.

Known limitation: the 1001st id minted in the same millisecond wraps to
suffix 0 and can collide. A clock moved backwards is not corrected either.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime

from pydantic import ValidationError

from feedback_kiosk.core.clock import epoch_ms
from feedback_kiosk.models.feedback import ID_SUFFIX_SPACE, IdSuffixState
from feedback_kiosk.protocols.storage import KeyValueStore

logger = logging.getLogger(__name__)

ID_STATE_KEY = "feedback_id_ms_v1"


def decode_state(raw: str | None) -> IdSuffixState | None:
    if not raw:
        return None
    try:
        return IdSuffixState.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Id suffix state is unreadable; starting a fresh counter")
        return None


class IdGenerator:
    def __init__(self, store: KeyValueStore, key: str = ID_STATE_KEY) -> None:
        self._store = store
        self._key = key
        # Submit and flush may mint concurrently; the state update must not interleave.
        self._lock = asyncio.Lock()

    async def mint_id(self, now: datetime) -> int:
        ms = epoch_ms(now)
        async with self._lock:
            state = decode_state(await self._store.get(self._key))

            suffix = 0
            if state is not None and state.ms == ms:
                suffix = (state.n + 1) % ID_SUFFIX_SPACE
                if suffix == 0:
                    logger.warning("Id suffix wrapped within millisecond %d", ms)

            await self._store.set(self._key, json.dumps({"ms": ms, "n": suffix}))
        return ms * ID_SUFFIX_SPACE + suffix


__all__ = ["ID_STATE_KEY", "IdGenerator", "decode_state"]
