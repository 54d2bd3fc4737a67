"""Feedback event contracts shared by the kiosk, the queue and the remote store.

Wire names (``grau_satisfacao``, ``queuedAt``, ``data``...) match the hosted
table and the local storage format, so models carry aliases and are dumped
with ``by_alias=True`` whenever they leave the process.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedback_kiosk.core.clock import (
    format_date,
    format_time,
    parse_iso,
    to_iso_utc,
    to_local,
    weekday_pt,
)

ID_SUFFIX_SPACE = 1000


class Grade(StrEnum):
    very_satisfied = "muito_satisfeito"
    satisfied = "satisfeito"
    unsatisfied = "insatisfeito"


GRADE_LABELS: dict[Grade, str] = {
    Grade.very_satisfied: "Muito Satisfeito",
    Grade.satisfied: "Satisfeito",
    Grade.unsatisfied: "Insatisfeito",
}


class FeedbackEvent(BaseModel):
    """One satisfaction tap.

    ``date``, ``time`` and ``weekday`` are computed once from the kiosk-local
    reading of ``created_at`` and travel with the event, so a record replayed
    hours later still shows when the user actually answered.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    grade: Grade
    created_at: datetime
    date: str
    time: str
    weekday: str

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("created_at must be timezone-aware")
        return value

    @classmethod
    def create(cls, event_id: int, grade: Grade, created_at: datetime, tz: ZoneInfo) -> FeedbackEvent:
        local = to_local(created_at, tz)
        return cls(
            id=event_id,
            grade=grade,
            created_at=local,
            date=format_date(local),
            time=format_time(local),
            weekday=weekday_pt(local),
        )

    @property
    def ms(self) -> int:
        return self.id // ID_SUFFIX_SPACE

    @property
    def suffix(self) -> int:
        return self.id % ID_SUFFIX_SPACE

    def to_record(self) -> dict[str, object]:
        """Row payload for the remote ``feedback`` table."""
        stamp = to_iso_utc(self.created_at)
        return {
            "id": self.id,
            "grau_satisfacao": self.grade.value,
            "data": self.date,
            "hora": self.time,
            "dia_semana": self.weekday,
            "created_at": stamp,
            "client_timestamp": stamp,
        }


class QueuedEvent(BaseModel):
    """Pending submission kept in local storage until a flush delivers it.

    ``queued_at`` stays the exact string that was written so reloading the
    queue reproduces the stored JSON unchanged.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    grade: Grade = Field(alias="grau_satisfacao")
    queued_at: str = Field(alias="queuedAt")

    @field_validator("queued_at")
    @classmethod
    def _validate_timestamp(cls, value: str) -> str:
        parse_iso(value)
        return value

    @classmethod
    def from_tap(cls, grade: Grade, click_time: datetime) -> QueuedEvent:
        return cls(grade=grade, queued_at=to_iso_utc(click_time))

    @property
    def created_at(self) -> datetime:
        return parse_iso(self.queued_at)

    def to_storage(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, mode="json")


class IdSuffixState(BaseModel):
    """Last millisecond and suffix handed out by the id generator."""

    ms: int
    n: int = Field(ge=0, lt=ID_SUFFIX_SPACE)


__all__ = [
    "GRADE_LABELS",
    "ID_SUFFIX_SPACE",
    "FeedbackEvent",
    "Grade",
    "IdSuffixState",
    "QueuedEvent",
]
