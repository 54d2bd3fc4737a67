"""Root logging for the kiosk process.

Log lines carry three optional tags: which kiosk wrote them, which
operation was running (``submit``, ``flush``, ``probe`` ...) and the id of
the feedback event in hand. The tags live in a context variable, so a tap
that crosses the id generator, the remote client and the pending queue is
greppable end to end.
"""

from __future__ import annotations

import contextvars
import dataclasses
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

CORRELATION_FIELDS = ("kiosk_id", "operation", "event_id")

_TEXT_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    + " ".join(f"{name}=%({name})s" for name in CORRELATION_FIELDS)
    + " %(message)s"
)


@dataclass(frozen=True, slots=True)
class CorrelationContext:
    kiosk_id: str | None = None
    operation: str | None = None
    event_id: str | None = None


_NO_CONTEXT = CorrelationContext()
_active: contextvars.ContextVar[CorrelationContext] = contextvars.ContextVar(
    "feedback_kiosk_correlation",
    default=_NO_CONTEXT,
)


def get_correlation_context() -> CorrelationContext:
    return _active.get()


class CorrelationFilter(logging.Filter):
    """Copies the active tags onto each record; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _active.get()
        for name in CORRELATION_FIELDS:
            setattr(record, name, getattr(context, name))
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, tags included even when unset."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object | None] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CORRELATION_FIELDS:
            payload[name] = getattr(record, name, None)
        if record.exc_info is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Replace the root handlers with a single tagged stdout handler.

    Safe to call again: earlier handlers and filters are dropped first.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.filters.clear()

    formatter = _JsonFormatter() if json_output else logging.Formatter(_TEXT_FORMAT)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    tags = CorrelationFilter()
    handler.addFilter(tags)
    root.addFilter(tags)
    root.addHandler(handler)


@contextmanager
def correlation_scope(
    *,
    kiosk_id: str | None = None,
    operation: str | None = None,
    event_id: str | None = None,
) -> Iterator[None]:
    """Set tags for the enclosed block.

    Only the arguments given are replaced; a flush pass that opens one scope
    per replayed entry keeps ``operation="flush"`` on every line.
    """
    overrides = {"kiosk_id": kiosk_id, "operation": operation, "event_id": event_id}
    scoped = dataclasses.replace(
        _active.get(),
        **{name: value for name, value in overrides.items() if value is not None},
    )
    token = _active.set(scoped)
    try:
        yield
    finally:
        _active.reset(token)


__all__ = [
    "CORRELATION_FIELDS",
    "CorrelationContext",
    "CorrelationFilter",
    "correlation_scope",
    "get_correlation_context",
    "setup_logging",
]
