from feedback_kiosk.analytics.service import (
    DailyTrend,
    FeedbackAnalytics,
    GradeCounts,
    HistoryPage,
    PeriodComparison,
    PublicSummary,
    daily_trend,
    pct_variation,
)

__all__ = [
    "DailyTrend",
    "FeedbackAnalytics",
    "GradeCounts",
    "HistoryPage",
    "PeriodComparison",
    "PublicSummary",
    "daily_trend",
    "pct_variation",
]
