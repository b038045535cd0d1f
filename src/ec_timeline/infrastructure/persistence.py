"""TimelineRepository — raw SQL over the append-only order_timelines table.

Always called inside the transaction of the transition it records, so a
failed append rolls the transition back with it.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.errors import InternalError
from src.ec_timeline.domain.models import TimelineEntry

_INSERT_SQL = text("""
    INSERT INTO order_timelines (order_id, event, content, operator)
    VALUES (:order_id, :event, :content, :operator)
    RETURNING id, order_id, event, content, operator, created_at
""")

_LIST_BY_ORDER_SQL = text("""
    SELECT id, order_id, event, content, operator, created_at
    FROM order_timelines
    WHERE order_id = :order_id
    ORDER BY created_at ASC, id ASC
""")


def _row_to_entry(row: Any) -> TimelineEntry:
    return TimelineEntry(
        id=row.id,
        order_id=row.order_id,
        event=row.event,
        content=row.content,
        operator=row.operator,
        created_at=row.created_at,
    )


class TimelineRepository:
    async def append(
        self,
        db: AsyncSession,
        order_id: str,
        event: str,
        content: str,
        operator: str,
    ) -> TimelineEntry:
        result = await db.execute(
            _INSERT_SQL,
            {"order_id": order_id, "event": event, "content": content, "operator": operator},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Timeline insert returned no rows — this should never happen")
        return _row_to_entry(row)

    async def list_by_order(self, db: AsyncSession, order_id: str) -> list[TimelineEntry]:
        result = await db.execute(_LIST_BY_ORDER_SQL, {"order_id": order_id})
        return [_row_to_entry(row) for row in result.fetchall()]
