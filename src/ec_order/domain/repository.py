# src/ec_order/domain/repository.py
"""OrderRepository Protocol — interface contract for persistence layer.

Every mutating method is a single conditional UPDATE; None means the
guard did not match (lost race or wrong state) and nothing was written.
"""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.enums import ActorKind
from src.ec_order.domain.models import Order
from src.ec_order.domain.state_machine import Transition


class OrderRepositoryProtocol(Protocol):
    async def save(self, db: AsyncSession, order: Order) -> Order: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_by_order_no(self, db: AsyncSession, order_no: str) -> Order | None: ...

    async def claim(
        self,
        db: AsyncSession,
        order_id: str,
        angel_id: str,
        from_statuses: frozenset[str],
    ) -> Order | None: ...

    async def apply_transition(
        self,
        db: AsyncSession,
        order_id: str,
        transition: Transition,
        actor_id: str,
        cancel_reason: str | None = None,
        completion_remark: str | None = None,
        completion_images: list[str] | None = None,
    ) -> Order | None: ...

    async def mark_paid(
        self,
        db: AsyncSession,
        order_id: str,
        expected_status: str,
        new_status: str,
        payment_method: str,
    ) -> Order | None: ...

    async def set_rating(
        self,
        db: AsyncSession,
        order_id: str,
        user_id: str,
        rating: int,
        comment: str | None,
    ) -> Order | None: ...

    async def list_for_actor(
        self,
        db: AsyncSession,
        kind: ActorKind,
        actor_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]: ...

    async def list_open_in_box(
        self,
        db: AsyncSession,
        statuses: frozenset[str],
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        limit: int,
    ) -> list[Order]: ...
