"""Calendar and locale helpers for feedback records.

All formatting reads the wall-clock fields of the datetime it is given, so
callers convert to the kiosk time zone (``to_local``) before formatting.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]

# Indexed by ``date.weekday()``: Monday == 0.
_WEEKDAYS_PT = (
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
    "Domingo",
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_local(moment: datetime, tz: ZoneInfo) -> datetime:
    """Convert an aware datetime to the kiosk zone. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(tz)


def format_date(moment: datetime | date) -> str:
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def format_time(moment: datetime | time) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"


def weekday_pt(moment: datetime | date) -> str:
    return _WEEKDAYS_PT[moment.weekday()]


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch, truncated like a JS ``getTime()``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    delta = moment - datetime(1970, 1, 1, tzinfo=UTC)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def parse_day(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string."""
    return date.fromisoformat(value)


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time(23, 59, 59, 999_000), tzinfo=tz)


def to_iso_utc(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp, accepting the ``Z`` suffix. Naive results are UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


__all__ = [
    "Clock",
    "end_of_day",
    "epoch_ms",
    "format_date",
    "format_time",
    "parse_day",
    "parse_iso",
    "start_of_day",
    "to_iso_utc",
    "to_local",
    "utc_now",
    "weekday_pt",
]
