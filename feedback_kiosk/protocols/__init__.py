from feedback_kiosk.protocols.remote import DataServiceClient
from feedback_kiosk.protocols.storage import KeyValueStore

__all__ = ["DataServiceClient", "KeyValueStore"]
