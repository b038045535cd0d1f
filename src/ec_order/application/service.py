# src/ec_order/application/service.py
"""OrderLifecycleService — drives an order from creation to a terminal state.

Every mutation follows one shape: load, validate (ownership, then state),
one conditional UPDATE, timeline append, commit. The UPDATE re-checks the
state guard, so a caller that loses a race gets InvalidOrderStateError
(or OrderAlreadyClaimedError on accept) instead of overwriting the winner.
Notifications go out only after commit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ec_catalog.domain.repository import CatalogRepositoryProtocol
from src.ec_catalog.infrastructure.persistence import CatalogRepository
from src.ec_common.enums import OperatorRole, OrderStatus, TimelineEvent
from src.ec_common.errors import (
    ForbiddenError,
    InvalidOrderStateError,
    OrderAlreadyClaimedError,
    OrderNotFoundError,
    PaymentGatewayError,
    ValidationFailedError,
)
from src.ec_common.events import OrderEventPublisher
from src.ec_common.geo import bounding_box, haversine_km, validate_coordinates
from src.ec_common.id_generator import generate_id, generate_order_no
from src.ec_identity.domain.models import Actor, Angel
from src.ec_identity.domain.repository import IdentityRepositoryProtocol
from src.ec_identity.infrastructure.persistence import IdentityRepository
from src.ec_order.application.schemas import (
    CancelOrderResponse,
    CreateOrderRequest,
    NearbyOrderItem,
    NearbyOrderListResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    TimelineEntryItem,
    TimelineResponse,
)
from src.ec_order.domain.models import Order
from src.ec_order.domain.repository import OrderRepositoryProtocol
from src.ec_order.domain.state_machine import (
    ARRIVE,
    CANCEL,
    COMPLETE,
    CONFIRM,
    DEPART,
    START,
    Transition,
    accept_statuses,
    ensure_claimable,
    ensure_transition_allowed,
)
from src.ec_order.infrastructure.persistence import OrderRepository
from src.ec_payment.application.service import PaymentApplicationService
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.settlement import SettlementService
from src.ec_payment.infrastructure.ledger import LedgerRepository
from src.ec_timeline.domain.repository import TimelineRepositoryProtocol
from src.ec_timeline.infrastructure.persistence import TimelineRepository

logger = logging.getLogger(__name__)

_VALID_STATUSES = frozenset(s.value for s in OrderStatus)


class OrderLifecycleService:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        timeline_repo: TimelineRepositoryProtocol | None = None,
        identity_repo: IdentityRepositoryProtocol | None = None,
        catalog_repo: CatalogRepositoryProtocol | None = None,
        settlement: SettlementService | None = None,
        payments: PaymentApplicationService | None = None,
        publisher: OrderEventPublisher | None = None,
        allow_accept_before_payment: bool | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._timeline: TimelineRepositoryProtocol = timeline_repo or TimelineRepository()
        self._identity: IdentityRepositoryProtocol = identity_repo or IdentityRepository()
        self._catalog: CatalogRepositoryProtocol = catalog_repo or CatalogRepository()
        self._settlement = settlement or SettlementService(
            LedgerRepository(), SettlementConfig.from_settings()
        )
        self._publisher = publisher or OrderEventPublisher()
        self._payments = payments or PaymentApplicationService(
            order_repo=self._orders,
            timeline_repo=self._timeline,
            catalog_repo=self._catalog,
            settlement=self._settlement,
            publisher=self._publisher,
        )
        if allow_accept_before_payment is None:
            allow_accept_before_payment = settings.ALLOW_ACCEPT_BEFORE_PAYMENT
        self._accept_statuses = accept_statuses(allow_accept_before_payment)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _get_order(self, db: AsyncSession, order_id: str) -> Order:
        order = await self._orders.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _get_visible_order(self, db: AsyncSession, actor: Actor, order_id: str) -> Order:
        order = await self._get_order(db, order_id)
        if not order.is_visible_to(actor.id):
            raise ForbiddenError()
        return order

    async def get_order_detail(
        self, db: AsyncSession, actor: Actor, order_id: str
    ) -> OrderDetailResponse:
        order = await self._get_visible_order(db, actor, order_id)
        entries = await self._timeline.list_by_order(db, order.id)
        return OrderDetailResponse(
            order=OrderResponse.from_domain(order),
            timeline=[TimelineEntryItem.from_domain(e) for e in entries],
        )

    async def get_timeline(self, db: AsyncSession, actor: Actor, order_id: str) -> TimelineResponse:
        order = await self._get_visible_order(db, actor, order_id)
        entries = await self._timeline.list_by_order(db, order.id)
        return TimelineResponse(
            order_id=order.id, items=[TimelineEntryItem.from_domain(e) for e in entries]
        )

    async def list_orders(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> OrderListResponse:
        if status is not None and status not in _VALID_STATUSES:
            raise ValidationFailedError(f"Unknown order status: {status}")
        orders = await self._orders.list_for_actor(
            db, actor.kind, actor.id, status, cursor, limit + 1
        )
        has_more = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(
            items=[OrderResponse.from_domain(o) for o in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def list_nearby(
        self,
        db: AsyncSession,
        lat: float,
        lng: float,
        radius_km: float | None = None,
    ) -> NearbyOrderListResponse:
        """Open, unassigned orders around a point, nearest first."""
        try:
            validate_coordinates(lat, lng)
        except ValueError as e:
            raise ValidationFailedError(str(e)) from None
        radius = settings.NEARBY_DEFAULT_RADIUS_KM if radius_km is None else radius_km
        if radius <= 0:
            raise ValidationFailedError("radius must be positive")
        radius = min(radius, settings.NEARBY_MAX_RADIUS_KM)

        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius)
        orders = await self._orders.list_open_in_box(
            db,
            self._accept_statuses,
            min_lat,
            max_lat,
            min_lng,
            max_lng,
            settings.NEARBY_MAX_RESULTS,
        )
        items = [
            NearbyOrderItem(
                **OrderResponse.from_domain(o).model_dump(),
                distance_km=haversine_km(lat, lng, o.lat, o.lng),
            )
            for o in orders
            if o.lat is not None and o.lng is not None
        ]
        items.sort(key=lambda item: item.distance_km)
        return NearbyOrderListResponse(radius_km=radius, items=items)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_order(
        self, db: AsyncSession, user_id: str, req: CreateOrderRequest
    ) -> OrderResponse:
        elderly = await self._identity.get_elderly_for_owner(db, req.elderly_id, user_id)
        if elderly is None:
            raise ValidationFailedError(f"Elderly {req.elderly_id} is not registered to this account")
        service_type = await self._catalog.get_by_id(db, req.service_type_id)
        if service_type is None or not service_type.is_active:
            raise ValidationFailedError(f"Unknown service type: {req.service_type_id}")

        order = Order(
            id=generate_id(),
            order_no=generate_order_no(),
            user_id=user_id,
            elderly_id=elderly.id,
            service_type_id=service_type.id,
            price=service_type.price,
            service_time=req.service_time,
            address=req.address,
            lat=req.lat,
            lng=req.lng,
            remark=req.remark,
            is_asap=req.is_asap,
        )
        try:
            saved = await self._orders.save(db, order)
            await self._timeline.append(
                db, saved.id, TimelineEvent.CREATE.value, "Order created", OperatorRole.SYSTEM.value
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s created by %s, price %d", saved.order_no, user_id, saved.price)
        await self._publisher.publish(TimelineEvent.CREATE.value, saved)
        return OrderResponse.from_domain(saved)

    # ------------------------------------------------------------------
    # Accept (claim)
    # ------------------------------------------------------------------

    async def accept(self, db: AsyncSession, angel: Angel, order_id: str) -> OrderResponse:
        order = await self._get_order(db, order_id)
        ensure_claimable(order, self._accept_statuses)
        try:
            claimed = await self._orders.claim(db, order.id, angel.id, self._accept_statuses)
            if claimed is None:
                current = await self._orders.get_by_id(db, order.id)
                if current is not None and current.angel_id is not None:
                    raise OrderAlreadyClaimedError(order.id, current.status)
                status = current.status if current is not None else order.status
                raise InvalidOrderStateError(order.id, status, "accept")
            await self._timeline.append(
                db,
                claimed.id,
                TimelineEvent.ACCEPT.value,
                f"Angel {angel.name or angel.id} accepted the order",
                OperatorRole.ANGEL.value,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s claimed by angel %s", claimed.id, angel.id)
        await self._publisher.publish(TimelineEvent.ACCEPT.value, claimed)
        return OrderResponse.from_domain(claimed)

    # ------------------------------------------------------------------
    # Guarded transitions
    # ------------------------------------------------------------------

    async def _advance(
        self,
        db: AsyncSession,
        order_id: str,
        actor_id: str,
        transition: Transition,
        content: str | None = None,
        cancel_reason: str | None = None,
        completion_remark: str | None = None,
        completion_images: list[str] | None = None,
    ) -> Order:
        order = await self._get_order(db, order_id)
        if getattr(order, transition.actor_column) != actor_id:
            raise ForbiddenError()
        ensure_transition_allowed(order, transition)
        try:
            updated = await self._orders.apply_transition(
                db,
                order.id,
                transition,
                actor_id,
                cancel_reason=cancel_reason,
                completion_remark=completion_remark,
                completion_images=completion_images,
            )
            if updated is None:
                current = await self._orders.get_by_id(db, order.id)
                status = current.status if current is not None else order.status
                raise InvalidOrderStateError(order.id, status, transition.action)
            await self._timeline.append(
                db,
                updated.id,
                transition.event.value,
                content or transition.content,
                transition.operator.value,
            )
            if transition is CONFIRM:
                await self._settlement.settle_order_income(db, updated)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s %s -> %s", updated.id, transition.action, updated.status)
        await self._publisher.publish(transition.event.value, updated)
        return updated

    async def depart(self, db: AsyncSession, angel: Angel, order_id: str) -> OrderResponse:
        return OrderResponse.from_domain(await self._advance(db, order_id, angel.id, DEPART))

    async def arrive(self, db: AsyncSession, angel: Angel, order_id: str) -> OrderResponse:
        return OrderResponse.from_domain(await self._advance(db, order_id, angel.id, ARRIVE))

    async def start(self, db: AsyncSession, angel: Angel, order_id: str) -> OrderResponse:
        return OrderResponse.from_domain(await self._advance(db, order_id, angel.id, START))

    async def complete_service(
        self,
        db: AsyncSession,
        angel: Angel,
        order_id: str,
        remark: str | None = None,
        images: list[str] | None = None,
    ) -> OrderResponse:
        updated = await self._advance(
            db,
            order_id,
            angel.id,
            COMPLETE,
            completion_remark=remark,
            completion_images=list(images or []),
        )
        return OrderResponse.from_domain(updated)

    async def confirm_complete(self, db: AsyncSession, user_id: str, order_id: str) -> OrderResponse:
        return OrderResponse.from_domain(await self._advance(db, order_id, user_id, CONFIRM))

    async def cancel(
        self, db: AsyncSession, user_id: str, order_id: str, reason: str
    ) -> CancelOrderResponse:
        """Cancel, then refund in a second step if the order was paid.

        The cancel commits on its own; a failed refund leaves the order
        CANCELLED and paid, and the owner retries through /payment/refund.
        """
        cancelled = await self._advance(
            db,
            order_id,
            user_id,
            CANCEL,
            content=f"{CANCEL.content}: {reason}",
            cancel_reason=reason,
        )
        if not cancelled.is_paid:
            return CancelOrderResponse(
                order=OrderResponse.from_domain(cancelled),
                refund_status="NOT_REQUIRED",
                message="Order cancelled",
            )

        try:
            refund = await self._payments.refund_cancelled_order(db, cancelled, reason)
        except (PaymentGatewayError, InvalidOrderStateError):
            logger.warning("Refund after cancelling order %s failed; owner may retry", cancelled.id, exc_info=True)
            return CancelOrderResponse(
                order=OrderResponse.from_domain(cancelled),
                refund_status="PENDING",
                message="Order cancelled; refund could not be issued yet, please retry",
            )
        refunded = await self._get_order(db, cancelled.id)
        return CancelOrderResponse(
            order=OrderResponse.from_domain(refunded),
            refund_status="REFUNDED",
            refund_id=refund.refund_id,
            message=refund.message,
        )

    # ------------------------------------------------------------------
    # Rate
    # ------------------------------------------------------------------

    async def rate(
        self,
        db: AsyncSession,
        user_id: str,
        order_id: str,
        rating: int,
        comment: str | None = None,
    ) -> OrderResponse:
        if not 1 <= rating <= 5:
            raise ValidationFailedError("rating must be between 1 and 5")
        order = await self._get_order(db, order_id)
        if order.user_id != user_id:
            raise ForbiddenError()
        if order.status != OrderStatus.COMPLETED.value:
            raise InvalidOrderStateError(order.id, order.status, "rate")
        if order.is_rated:
            raise InvalidOrderStateError(
                order.id, order.status, "rate", detail=f"Order {order.id} has already been rated"
            )
        try:
            rated = await self._orders.set_rating(db, order.id, user_id, rating, comment)
            if rated is None:
                raise InvalidOrderStateError(
                    order.id, order.status, "rate", detail=f"Order {order.id} has already been rated"
                )
            await self._timeline.append(
                db,
                rated.id,
                TimelineEvent.RATE.value,
                f"Rated {rating} stars",
                OperatorRole.FAMILY.value,
            )
            if rated.angel_id is not None:
                new_rating = await self._identity.recompute_angel_rating(db, rated.angel_id)
                logger.info("Angel %s rating recomputed: %s", rated.angel_id, new_rating)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await self._publisher.publish(TimelineEvent.RATE.value, rated)
        return OrderResponse.from_domain(rated)
