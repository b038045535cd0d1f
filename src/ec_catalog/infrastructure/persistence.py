"""CatalogRepository — read-only raw SQL over service_types."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_catalog.domain.models import ServiceType

_SELECT_COLUMNS = "id, name, price, unit, category, description, sort_order, is_active"

_GET_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM service_types WHERE id = :id AND is_active = TRUE
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM service_types WHERE is_active = TRUE
    ORDER BY sort_order ASC, id ASC
""")


def _row_to_service_type(row: Any) -> ServiceType:
    return ServiceType(
        id=row.id,
        name=row.name,
        price=row.price,
        unit=row.unit,
        category=row.category,
        description=row.description,
        sort_order=row.sort_order,
        is_active=row.is_active,
    )


class CatalogRepository:
    async def get_by_id(self, db: AsyncSession, service_type_id: str) -> ServiceType | None:
        result = await db.execute(_GET_BY_ID_SQL, {"id": service_type_id})
        row = result.fetchone()
        return _row_to_service_type(row) if row else None

    async def list_active(self, db: AsyncSession) -> list[ServiceType]:
        result = await db.execute(_LIST_ACTIVE_SQL)
        return [_row_to_service_type(row) for row in result.fetchall()]
