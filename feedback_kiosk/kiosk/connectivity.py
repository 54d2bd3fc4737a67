"""Online/offline state of the kiosk, with change notifications.

The flag is a hint, not a guarantee: submissions still try the network when
it says offline, and a probe may flip it back at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from feedback_kiosk.core.events import EventEmitter, Handler, Unsubscribe

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    def __init__(self, probe: Probe | None = None, online: bool = True) -> None:
        self._probe = probe
        self._online = online
        self._changes: EventEmitter[bool] = EventEmitter("connectivity")

    @property
    def online(self) -> bool:
        return self._online

    def on_connectivity_change(self, handler: Handler[bool]) -> Unsubscribe:
        return self._changes.subscribe(handler)

    async def set_online(self, online: bool) -> None:
        """Record the new state; handlers run only on an actual transition."""
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        await self._changes.emit(online)

    async def probe(self) -> bool:
        if self._probe is None:
            return self._online
        reachable = await self._probe()
        await self.set_online(reachable)
        return reachable


__all__ = ["ConnectivityMonitor", "Probe"]
