from __future__ import annotations

from feedback_kiosk.models.feedback import (
    GRADE_LABELS,
    ID_SUFFIX_SPACE,
    FeedbackEvent,
    Grade,
    IdSuffixState,
    QueuedEvent,
)
from feedback_kiosk.models.kiosk import (
    FlushReport,
    KioskMessage,
    MessageKind,
    SubmissionOutcome,
    SubmissionResult,
)

__all__ = [
    "GRADE_LABELS",
    "ID_SUFFIX_SPACE",
    "FeedbackEvent",
    "FlushReport",
    "Grade",
    "IdSuffixState",
    "KioskMessage",
    "MessageKind",
    "QueuedEvent",
    "SubmissionOutcome",
    "SubmissionResult",
]
