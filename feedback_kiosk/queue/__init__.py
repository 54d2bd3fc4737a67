"""Local pending queue and id minting for offline-resilient submission."""

from feedback_kiosk.queue.ids import ID_STATE_KEY, IdGenerator
from feedback_kiosk.queue.pending import QUEUE_KEY, PendingQueue

__all__ = ["ID_STATE_KEY", "QUEUE_KEY", "IdGenerator", "PendingQueue"]
