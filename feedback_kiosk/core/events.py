"""Observer and single-flight primitives shared by the kiosk runtime."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


class EventEmitter(Generic[T]):
    """Ordered list of handlers notified with one value per event.

    Handlers may be sync or async. A failing handler is logged and does not
    stop the remaining handlers from running.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler[T]] = []

    def subscribe(self, handler: Handler[T]) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def emit(self, value: T) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(value)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s event failed", self.name)


class SingleFlight:
    """Boolean guard allowing one in-flight operation of a given kind.

    ``try_enter`` returns False instead of waiting when the operation is
    already running; callers treat that as "ignore this trigger".
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def try_enter(self) -> bool:
        if self._busy:
            logger.debug("%s already in flight, ignoring trigger", self.name)
            return False
        self._busy = True
        return True

    def leave(self) -> None:
        self._busy = False


__all__ = ["EventEmitter", "Handler", "SingleFlight", "Unsubscribe"]
