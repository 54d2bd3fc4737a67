from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from feedback_kiosk.remote.query import Filter, Order, SelectResult


@runtime_checkable
class DataServiceClient(Protocol):
    async def insert(self, table: str, record: dict[str, object]) -> dict[str, object]: ...

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Order | None = None,
        limit: int | None = None,
        offset: int | None = None,
        count: bool = False,
    ) -> SelectResult: ...

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int: ...

    async def ping(self) -> bool: ...


__all__ = ["DataServiceClient"]
