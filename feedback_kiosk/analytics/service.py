"""Read-only aggregates over the feedback table.

Serves the kiosk's public summary, the admin dashboard (totals, day view,
period comparison, paged history) and the TV trend. Every query goes
through the same ``DataServiceClient`` as submissions; failures propagate as
``RemoteServiceError`` and callers decide whether to keep a stale snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from zoneinfo import ZoneInfo

from feedback_kiosk.core.clock import end_of_day, format_date, parse_day, start_of_day, to_iso_utc
from feedback_kiosk.errors import RemoteServiceError
from feedback_kiosk.models.feedback import Grade
from feedback_kiosk.protocols.remote import DataServiceClient
from feedback_kiosk.remote.query import Filter, Order, eq, gte, lte

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 50
ID_LOOKUP_LIMIT = 10
_NEWEST_FIRST = Order("created_at", ascending=False)


@dataclass(slots=True)
class GradeCounts:
    very_satisfied: int = 0
    satisfied: int = 0
    unsatisfied: int = 0
    # Rows whose grade is none of the three; only filled by all-time totals.
    other: int = 0

    @property
    def total(self) -> int:
        return self.very_satisfied + self.satisfied + self.unsatisfied + self.other

    def get(self, grade: Grade) -> int:
        return {
            Grade.very_satisfied: self.very_satisfied,
            Grade.satisfied: self.satisfied,
            Grade.unsatisfied: self.unsatisfied,
        }[grade]

    def as_dict(self) -> dict[str, int]:
        return {
            Grade.very_satisfied.value: self.very_satisfied,
            Grade.satisfied.value: self.satisfied,
            Grade.unsatisfied.value: self.unsatisfied,
            "total": self.total,
        }


@dataclass(slots=True)
class PeriodComparison:
    period1: GradeCounts
    period2: GradeCounts
    variation: dict[str, int]


@dataclass(slots=True)
class PublicSummary:
    date: str
    today: GradeCounts
    total: int
    last_id: str | None

    @property
    def today_total(self) -> int:
        return self.today.total


@dataclass(slots=True)
class HistoryPage:
    rows: list[dict[str, object]]
    page: int
    has_prev: bool
    has_next: bool


@dataclass(slots=True)
class DailyTrend:
    labels: list[str] = field(default_factory=list)
    totals: list[int] = field(default_factory=list)
    by_date: dict[str, GradeCounts] = field(default_factory=dict)


def pct_variation(before: int, after: int) -> int:
    """Percentage change, rounded half up; 100 when growing from zero."""
    if before == 0:
        return 0 if after == 0 else 100
    # floor(x + 0.5): halves round up (-2.5 -> -2), unlike round().
    return math.floor((after - before) / before * 100 + 0.5)


def with_doc_id(row: dict[str, object]) -> dict[str, object]:
    return {**row, "doc_id": row.get("row_id") or row.get("id")}


def daily_trend(rows: list[dict[str, object]], days: int = 10) -> DailyTrend:
    """Per-day counts over a recent sample, keeping the last ``days`` dates."""
    by_date: dict[str, GradeCounts] = {}
    for row in rows:
        day = row.get("data")
        if not isinstance(day, str) or not day:
            continue
        counts = by_date.setdefault(day, GradeCounts())
        grade = row.get("grau_satisfacao")
        if grade == Grade.very_satisfied.value:
            counts.very_satisfied += 1
        elif grade == Grade.satisfied.value:
            counts.satisfied += 1
        elif grade == Grade.unsatisfied.value:
            counts.unsatisfied += 1

    labels = sorted(by_date)[-days:] if days > 0 else []
    return DailyTrend(
        labels=labels,
        totals=[by_date[label].total for label in labels],
        by_date={label: by_date[label] for label in labels},
    )


class FeedbackAnalytics:
    def __init__(self, client: DataServiceClient, table: str, tz: ZoneInfo) -> None:
        self._client = client
        self._table = table
        self._tz = tz

    async def _count(self, *filters: Filter) -> int:
        return await self._client.count(self._table, filters=filters)

    async def _grade_counts(self, *filters: Filter) -> GradeCounts:
        very, satisfied, unsatisfied = await asyncio.gather(
            *(self._count(eq("grau_satisfacao", grade.value), *filters) for grade in Grade)
        )
        return GradeCounts(very_satisfied=very, satisfied=satisfied, unsatisfied=unsatisfied)

    def _range_filters(self, start: date, end: date) -> tuple[Filter, Filter]:
        return (
            gte("created_at", to_iso_utc(start_of_day(start, self._tz))),
            lte("created_at", to_iso_utc(end_of_day(end, self._tz))),
        )

    async def totals_all_time(self) -> GradeCounts:
        counts, every_row = await asyncio.gather(self._grade_counts(), self._count())
        counts.other = max(0, every_row - counts.total)
        return counts

    async def totals_for_day(self, day: str) -> GradeCounts:
        return await self._grade_counts(eq("data", day))

    async def totals_for_range(self, start: str, end: str, grade: Grade | None = None) -> int:
        filters = list(self._range_filters(parse_day(start), parse_day(end)))
        if grade is not None:
            filters.append(eq("grau_satisfacao", Grade(grade).value))
        return await self._count(*filters)

    async def compare_periods(self, p1_start: str, p1_end: str, p2_start: str, p2_end: str) -> PeriodComparison:
        first, second = await asyncio.gather(
            self._grade_counts(*self._range_filters(parse_day(p1_start), parse_day(p1_end))),
            self._grade_counts(*self._range_filters(parse_day(p2_start), parse_day(p2_end))),
        )
        variation = {
            grade.value: pct_variation(first.get(grade), second.get(grade)) for grade in Grade
        }
        variation["total"] = pct_variation(first.total, second.total)
        return PeriodComparison(period1=first, period2=second, variation=variation)

    async def public_summary(self, today: date) -> PublicSummary:
        day = format_date(today)
        total = await self._count()
        today_counts = await self.totals_for_day(day)

        last_id: str | None
        try:
            result = await self._client.select(self._table, columns="row_id,id", order=_NEWEST_FIRST, limit=1)
            row = result.rows[0] if result.rows else {}
            raw = row.get("row_id") or row.get("id")
            last_id = str(raw) if raw is not None else None
        except RemoteServiceError:
            logger.debug("Last id lookup failed; summary shows none")
            last_id = None

        return PublicSummary(date=day, today=today_counts, total=total, last_id=last_id)

    async def last_feedback(self) -> dict[str, object] | None:
        result = await self._client.select(self._table, order=_NEWEST_FIRST, limit=1)
        return with_doc_id(result.rows[0]) if result.rows else None

    async def feedback_by_id(self, doc_id: str) -> dict[str, object] | None:
        if not doc_id:
            return None
        result = await self._client.select(self._table, filters=[eq("row_id", doc_id)], limit=1)
        return with_doc_id(result.rows[0]) if result.rows else None

    async def recent_feedback(self, limit: int = 600) -> list[dict[str, object]]:
        result = await self._client.select(self._table, order=_NEWEST_FIRST, limit=limit)
        return [with_doc_id(row) for row in result.rows]

    async def available_dates(self, max_scan: int = 2000) -> list[str]:
        result = await self._client.select(self._table, columns="data", order=_NEWEST_FIRST, limit=max_scan)
        seen = {row.get("data") for row in result.rows}
        return sorted(day for day in seen if isinstance(day, str) and day)

    async def find_by_id(self, query: str) -> list[dict[str, object]]:
        """Admin id search: numeric input matches the numeric id, else the raw text."""
        text = query.strip()
        value: object = int(text) if text.isdigit() and int(text) > 0 else text
        result = await self._client.select(self._table, filters=[eq("id", value)], limit=ID_LOOKUP_LIMIT)
        return [with_doc_id(row) for row in result.rows]

    async def history_page(
        self,
        date_from: str,
        date_to: str,
        grade: Grade | None = None,
        page: int = 1,
        page_size: int = HISTORY_PAGE_SIZE,
    ) -> HistoryPage:
        page = max(1, page)
        filters = [gte("data", date_from), lte("data", date_to)]
        if grade is not None:
            filters.append(eq("grau_satisfacao", Grade(grade).value))
        offset = (page - 1) * page_size
        result = await self._client.select(
            self._table,
            filters=filters,
            order=_NEWEST_FIRST,
            limit=page_size,
            offset=offset,
            count=True,
        )
        return HistoryPage(
            rows=[with_doc_id(row) for row in result.rows],
            page=page,
            has_prev=page > 1,
            has_next=offset + page_size < (result.count or 0),
        )

    async def trend(self, sample: int = 600, days: int = 10) -> DailyTrend:
        return daily_trend(await self.recent_feedback(limit=sample), days=days)


__all__ = [
    "HISTORY_PAGE_SIZE",
    "DailyTrend",
    "FeedbackAnalytics",
    "GradeCounts",
    "HistoryPage",
    "PeriodComparison",
    "PublicSummary",
    "daily_trend",
    "pct_variation",
    "with_doc_id",
]
