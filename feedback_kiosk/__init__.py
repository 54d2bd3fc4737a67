"""Offline-resilient feedback kiosk: submission, local queue and sync."""

__version__ = "0.1.0"
