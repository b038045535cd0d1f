"""TimelineRepository Protocol — append and read, never update or delete."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_timeline.domain.models import TimelineEntry


class TimelineRepositoryProtocol(Protocol):
    async def append(
        self,
        db: AsyncSession,
        order_id: str,
        event: str,
        content: str,
        operator: str,
    ) -> TimelineEntry: ...

    async def list_by_order(self, db: AsyncSession, order_id: str) -> list[TimelineEntry]: ...
