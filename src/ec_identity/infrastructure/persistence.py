"""IdentityRepository — raw SQL lookups over family_members, elderly and angels.

Profile CRUD lives elsewhere; this module only reads, plus the angel
rating recompute which is a side effect of rating an order.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_identity.domain.models import Angel, Elderly, FamilyMember

_GET_FAMILY_MEMBER_SQL = text("""
    SELECT id, name, phone, created_at
    FROM family_members WHERE id = :id
""")

_ELDERLY_COLUMNS = "id, name, phone, user_id, address, lat, lng, created_at"

_GET_ELDERLY_SQL = text(f"""
    SELECT {_ELDERLY_COLUMNS}
    FROM elderly WHERE id = :id
""")

_GET_ELDERLY_FOR_OWNER_SQL = text(f"""
    SELECT {_ELDERLY_COLUMNS}
    FROM elderly WHERE id = :id AND user_id = :user_id
""")

_GET_ANGEL_SQL = text("""
    SELECT id, name, phone, balance, completed_orders, rating,
           is_verified, is_online, created_at
    FROM angels WHERE id = :id
""")

# Full recompute over every rated order, never an incremental update
_RECOMPUTE_RATING_SQL = text("""
    UPDATE angels
    SET rating = sub.avg_rating, updated_at = NOW()
    FROM (
        SELECT CAST(AVG(rating) AS DOUBLE PRECISION) AS avg_rating
        FROM orders
        WHERE angel_id = :angel_id AND rating IS NOT NULL
    ) AS sub
    WHERE angels.id = :angel_id AND sub.avg_rating IS NOT NULL
    RETURNING angels.rating
""")


def _row_to_family_member(row: Any) -> FamilyMember:
    return FamilyMember(
        id=row.id,
        name=row.name,
        phone=row.phone,
        created_at=row.created_at,
    )


def _row_to_elderly(row: Any) -> Elderly:
    return Elderly(
        id=row.id,
        name=row.name,
        phone=row.phone,
        user_id=row.user_id,
        address=row.address,
        lat=row.lat,
        lng=row.lng,
        created_at=row.created_at,
    )


def _row_to_angel(row: Any) -> Angel:
    return Angel(
        id=row.id,
        name=row.name,
        phone=row.phone,
        balance=row.balance,
        completed_orders=row.completed_orders,
        rating=row.rating,
        is_verified=row.is_verified,
        is_online=row.is_online,
        created_at=row.created_at,
    )


class IdentityRepository:
    async def get_family_member(
        self, db: AsyncSession, user_id: str
    ) -> FamilyMember | None:
        result = await db.execute(_GET_FAMILY_MEMBER_SQL, {"id": user_id})
        row = result.fetchone()
        return _row_to_family_member(row) if row else None

    async def get_elderly(self, db: AsyncSession, elderly_id: str) -> Elderly | None:
        result = await db.execute(_GET_ELDERLY_SQL, {"id": elderly_id})
        row = result.fetchone()
        return _row_to_elderly(row) if row else None

    async def get_elderly_for_owner(
        self, db: AsyncSession, elderly_id: str, user_id: str
    ) -> Elderly | None:
        result = await db.execute(
            _GET_ELDERLY_FOR_OWNER_SQL, {"id": elderly_id, "user_id": user_id}
        )
        row = result.fetchone()
        return _row_to_elderly(row) if row else None

    async def get_angel(self, db: AsyncSession, angel_id: str) -> Angel | None:
        result = await db.execute(_GET_ANGEL_SQL, {"id": angel_id})
        row = result.fetchone()
        return _row_to_angel(row) if row else None

    async def recompute_angel_rating(
        self, db: AsyncSession, angel_id: str
    ) -> float | None:
        result = await db.execute(_RECOMPUTE_RATING_SQL, {"angel_id": angel_id})
        row = result.fetchone()
        return float(row.rating) if row else None
