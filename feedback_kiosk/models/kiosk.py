from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from feedback_kiosk.models.feedback import FeedbackEvent

MessageKind = Literal["success", "loading", "error"]


class SubmissionOutcome(StrEnum):
    succeeded = "succeeded"
    queued = "queued"
    denied = "denied"
    failed = "failed"


class KioskMessage(BaseModel):
    kind: MessageKind
    text: str
    duration_ms: int = Field(gt=0)


class SubmissionResult(BaseModel):
    outcome: SubmissionOutcome
    message: KioskMessage
    event: FeedbackEvent


class FlushReport(BaseModel):
    attempted: int = 0
    sent: int = 0
    remaining: int = 0
    denied: bool = False
    skipped: bool = False


__all__ = [
    "FlushReport",
    "KioskMessage",
    "MessageKind",
    "SubmissionOutcome",
    "SubmissionResult",
]
