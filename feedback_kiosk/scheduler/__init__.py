from feedback_kiosk.scheduler.ap_scheduler import KioskScheduler

__all__ = ["KioskScheduler"]
