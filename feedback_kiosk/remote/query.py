"""Query building blocks for the PostgREST data API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

FilterOp = Literal["eq", "neq", "gt", "gte", "lt", "lte"]


@dataclass(frozen=True, slots=True)
class Filter:
    column: str
    op: FilterOp
    value: object

    def as_param(self) -> tuple[str, str]:
        return self.column, f"{self.op}.{self.value}"


@dataclass(frozen=True, slots=True)
class Order:
    column: str
    ascending: bool = True

    def as_param(self) -> str:
        return f"{self.column}.{'asc' if self.ascending else 'desc'}"


@dataclass(slots=True)
class SelectResult:
    rows: list[dict[str, object]] = field(default_factory=list)
    count: int | None = None


def eq(column: str, value: object) -> Filter:
    return Filter(column, "eq", value)


def gte(column: str, value: object) -> Filter:
    return Filter(column, "gte", value)


def lte(column: str, value: object) -> Filter:
    return Filter(column, "lte", value)


def parse_content_range(header: str | None) -> int | None:
    """Extract the total from a ``Content-Range`` header (``0-49/321`` or ``*/321``)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


__all__ = [
    "Filter",
    "FilterOp",
    "Order",
    "SelectResult",
    "eq",
    "gte",
    "lte",
    "parse_content_range",
]
