"""Kiosk-side orchestration: submission, queue replay and runtime wiring."""

from feedback_kiosk.kiosk.connectivity import ConnectivityMonitor
from feedback_kiosk.kiosk.flush import QueueFlusher
from feedback_kiosk.kiosk.messages import MessageBoard, MessageCatalog
from feedback_kiosk.kiosk.recorder import FeedbackRecorder
from feedback_kiosk.kiosk.runtime import KioskRuntime
from feedback_kiosk.kiosk.submission import SubmissionOrchestrator

__all__ = [
    "ConnectivityMonitor",
    "FeedbackRecorder",
    "KioskRuntime",
    "MessageBoard",
    "MessageCatalog",
    "QueueFlusher",
    "SubmissionOrchestrator",
]
