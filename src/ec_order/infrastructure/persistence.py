# src/ec_order/infrastructure/persistence.py
"""OrderRepository — raw SQL persistence implementation.

Concurrency model: no read-modify-write. Each state change is one
`UPDATE ... WHERE <guard> RETURNING`, so among concurrent callers exactly
one matches the guard and the rest get no row back. The claim guard is
`angel_id IS NULL`; every other guard is on the stored status (and the
acting angel/owner). `price` is never written after INSERT.
"""
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.enums import ActorKind, OrderStatus
from src.ec_common.errors import InternalError
from src.ec_order.domain.models import Order
from src.ec_order.domain.state_machine import ALL_TRANSITIONS, Transition

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, order_no, user_id, elderly_id, service_type_id, angel_id,
    price, service_time, address, lat, lng, remark, is_asap,
    status, is_paid, payment_method, rating, comment, cancel_reason,
    completion_remark, completion_images,
    created_at, accepted_at, departed_at, arrived_at, started_at,
    completed_at, cancelled_at, paid_at, refunded_at, rated_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders (id, order_no, user_id, elderly_id, service_type_id,
        price, service_time, address, lat, lng, remark, is_asap, status)
    VALUES (:id, :order_no, :user_id, :elderly_id, :service_type_id,
        :price, :service_time, :address, :lat, :lng, :remark, :is_asap, :status)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
""")

_GET_ORDER_BY_NO_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE order_no = :order_no
""")

_STATUS_IN = "status = ANY(string_to_array(CAST(:from_csv AS TEXT), ','))"

_CLAIM_SQL = text(f"""
    UPDATE orders
    SET status = '{OrderStatus.ACCEPTED.value}', angel_id = :angel_id,
        accepted_at = COALESCE(accepted_at, NOW()), updated_at = NOW()
    WHERE id = :id AND angel_id IS NULL AND {_STATUS_IN}
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_PAID_SQL = text(f"""
    UPDATE orders
    SET is_paid = TRUE, paid_at = COALESCE(paid_at, NOW()),
        payment_method = :payment_method, status = :new_status, updated_at = NOW()
    WHERE id = :id AND is_paid = FALSE AND status = :expected_status
    RETURNING {_SELECT_COLUMNS}
""")

_SET_RATING_SQL = text(f"""
    UPDATE orders
    SET rating = :rating, comment = :comment, rated_at = NOW(), updated_at = NOW()
    WHERE id = :id AND user_id = :user_id
      AND status = '{OrderStatus.COMPLETED.value}' AND rating IS NULL
    RETURNING {_SELECT_COLUMNS}
""")

# Per-transition extra columns written from caller-supplied values
_TRANSITION_PARAMS: dict[str, tuple[str, ...]] = {
    "cancel": ("cancel_reason",),
    "complete": ("completion_remark", "completion_images"),
}


def _build_transition_sql(t: Transition) -> TextClause:
    sets = [
        "status = :to_status",
        f"{t.timestamp_field} = COALESCE({t.timestamp_field}, NOW())",
    ]
    sets.extend(f"{col} = COALESCE({col}, NOW())" for col in t.backfill_fields)
    for col in _TRANSITION_PARAMS.get(t.action, ()):
        if col == "completion_images":
            sets.append("completion_images = CAST(:completion_images AS TEXT[])")
        else:
            sets.append(f"{col} = :{col}")
    sets.append("updated_at = NOW()")
    return text(f"""
        UPDATE orders
        SET {", ".join(sets)}
        WHERE id = :id AND {t.actor_column} = :actor_id AND {_STATUS_IN}
        RETURNING {_SELECT_COLUMNS}
    """)


_TRANSITION_SQL: dict[str, TextClause] = {t.action: _build_transition_sql(t) for t in ALL_TRANSITIONS}

_ACTOR_COLUMN: dict[ActorKind, str] = {
    ActorKind.FAMILY: "user_id",
    ActorKind.ANGEL: "angel_id",
    ActorKind.ELDERLY: "elderly_id",
}

_LIST_SQL: dict[ActorKind, TextClause] = {
    kind: text(f"""
        SELECT {_SELECT_COLUMNS}
        FROM orders
        WHERE {column} = :actor_id
          AND (CAST(:status AS TEXT) IS NULL OR status = :status)
          AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
        ORDER BY id DESC
        LIMIT :limit
    """)
    for kind, column in _ACTOR_COLUMN.items()
}

_LIST_OPEN_IN_BOX_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE angel_id IS NULL AND {_STATUS_IN}
      AND lat BETWEEN :min_lat AND :max_lat
      AND lng BETWEEN :min_lng AND :max_lng
    ORDER BY created_at DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    """Convert a DB result row to an Order domain object."""
    return Order(
        id=row.id,
        order_no=row.order_no,
        user_id=row.user_id,
        elderly_id=row.elderly_id,
        service_type_id=row.service_type_id,
        angel_id=row.angel_id,
        price=row.price,
        service_time=row.service_time,
        address=row.address,
        lat=row.lat,
        lng=row.lng,
        remark=row.remark,
        is_asap=row.is_asap,
        status=row.status,
        is_paid=row.is_paid,
        payment_method=row.payment_method,
        rating=row.rating,
        comment=row.comment,
        cancel_reason=row.cancel_reason,
        completion_remark=row.completion_remark,
        completion_images=list(row.completion_images or []),
        created_at=row.created_at,
        accepted_at=row.accepted_at,
        departed_at=row.departed_at,
        arrived_at=row.arrived_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        paid_at=row.paid_at,
        refunded_at=row.refunded_at,
        rated_at=row.rated_at,
        updated_at=row.updated_at,
    )


def _csv(statuses: frozenset[str]) -> str:
    return ",".join(sorted(statuses))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, db: AsyncSession, order: Order) -> Order:
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_no": order.order_no,
                "user_id": order.user_id,
                "elderly_id": order.elderly_id,
                "service_type_id": order.service_type_id,
                "price": order.price,
                "service_time": order.service_time,
                "address": order.address,
                "lat": order.lat,
                "lng": order.lng,
                "remark": order.remark,
                "is_asap": order.is_asap,
                "status": order.status,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Order insert returned no rows — this should never happen")
        return _row_to_order(row)

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def get_by_order_no(self, db: AsyncSession, order_no: str) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_NO_SQL, {"order_no": order_no})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def claim(
        self,
        db: AsyncSession,
        order_id: str,
        angel_id: str,
        from_statuses: frozenset[str],
    ) -> Order | None:
        result = await db.execute(
            _CLAIM_SQL,
            {"id": order_id, "angel_id": angel_id, "from_csv": _csv(from_statuses)},
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def apply_transition(
        self,
        db: AsyncSession,
        order_id: str,
        transition: Transition,
        actor_id: str,
        cancel_reason: str | None = None,
        completion_remark: str | None = None,
        completion_images: list[str] | None = None,
    ) -> Order | None:
        params: dict[str, Any] = {
            "id": order_id,
            "actor_id": actor_id,
            "to_status": transition.to_status,
            "from_csv": _csv(transition.from_statuses),
        }
        optional = {
            "cancel_reason": cancel_reason,
            "completion_remark": completion_remark,
            "completion_images": list(completion_images or []),
        }
        for col in _TRANSITION_PARAMS.get(transition.action, ()):
            params[col] = optional[col]
        result = await db.execute(_TRANSITION_SQL[transition.action], params)
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def mark_paid(
        self,
        db: AsyncSession,
        order_id: str,
        expected_status: str,
        new_status: str,
        payment_method: str,
    ) -> Order | None:
        result = await db.execute(
            _MARK_PAID_SQL,
            {
                "id": order_id,
                "expected_status": expected_status,
                "new_status": new_status,
                "payment_method": payment_method,
            },
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def set_rating(
        self,
        db: AsyncSession,
        order_id: str,
        user_id: str,
        rating: int,
        comment: str | None,
    ) -> Order | None:
        result = await db.execute(
            _SET_RATING_SQL,
            {"id": order_id, "user_id": user_id, "rating": rating, "comment": comment},
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_for_actor(
        self,
        db: AsyncSession,
        kind: ActorKind,
        actor_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_SQL[kind],
            {"actor_id": actor_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_open_in_box(
        self,
        db: AsyncSession,
        statuses: frozenset[str],
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_OPEN_IN_BOX_SQL,
            {
                "from_csv": _csv(statuses),
                "min_lat": min_lat,
                "max_lat": max_lat,
                "min_lng": min_lng,
                "max_lng": max_lng,
                "limit": limit,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]
