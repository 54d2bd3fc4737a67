"""Clients for the hosted data service: PostgREST data API and auth."""

from feedback_kiosk.remote.auth import AuthClient, AuthSession, AuthStateChange
from feedback_kiosk.remote.client import SupabaseRestClient
from feedback_kiosk.remote.query import Filter, Order, SelectResult

__all__ = [
    "AuthClient",
    "AuthSession",
    "AuthStateChange",
    "Filter",
    "Order",
    "SelectResult",
    "SupabaseRestClient",
]
