"""PaymentApplicationService — create-payment, callback, refund, withdraw, income.

State changes follow the lifecycle engine's rules: one conditional UPDATE,
a timeline append, then commit; rollback and re-raise on any failure.
Gateway calls happen before any state change, so a PaymentGatewayError
leaves the order untouched.
"""

import logging
from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ec_catalog.domain.repository import CatalogRepositoryProtocol
from src.ec_catalog.infrastructure.persistence import CatalogRepository
from src.ec_common.enums import OperatorRole, OrderStatus, TimelineEvent, WithdrawMethod
from src.ec_common.errors import (
    ForbiddenError,
    InvalidOrderStateError,
    OrderNotFoundError,
    ValidationFailedError,
)
from src.ec_common.events import OrderEventPublisher
from src.ec_common.money import cents_to_display
from src.ec_order.domain.models import Order
from src.ec_order.domain.repository import OrderRepositoryProtocol
from src.ec_order.domain.state_machine import REFUND, ensure_transition_allowed
from src.ec_order.infrastructure.persistence import OrderRepository
from src.ec_payment.application.schemas import (
    CreatePaymentResponse,
    IncomeListResponse,
    IncomeRecordItem,
    PaymentHandleResponse,
    RefundResponse,
    WithdrawResponse,
    cursor_decode,
    cursor_encode,
)
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.repository import LedgerRepositoryProtocol
from src.ec_payment.domain.settlement import SettlementService
from src.ec_payment.infrastructure.gateway import PaymentGatewayProtocol, build_payment_gateway
from src.ec_payment.infrastructure.ledger import LedgerRepository
from src.ec_timeline.domain.repository import TimelineRepositoryProtocol
from src.ec_timeline.infrastructure.persistence import TimelineRepository

logger = logging.getLogger(__name__)

S = OrderStatus

PAYABLE_STATUSES = frozenset({S.PENDING.value, S.PENDING_CONFIRM.value})
PAYMENT_METHOD = "wechat"

# Status a payment moves the order to; others keep their status
_PAID_NEXT_STATUS: dict[str, str] = {
    S.PENDING.value: S.PAID.value,
    S.PENDING_CONFIRM.value: S.COMPLETED.value,
}

_WITHDRAW_METHOD_NAMES: dict[WithdrawMethod, str] = {
    WithdrawMethod.WECHAT: "WeChat wallet",
    WithdrawMethod.ALIPAY: "Alipay",
    WithdrawMethod.BANK: "bank card",
}

ACK_SUCCESS = {"code": "SUCCESS", "message": "OK"}
CALLBACK_APPLY_ATTEMPTS = 3


def _ack_fail(message: str) -> dict[str, str]:
    return {"code": "FAIL", "message": message}


class PaymentApplicationService:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        timeline_repo: TimelineRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        catalog_repo: CatalogRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
        config: SettlementConfig | None = None,
        settlement: SettlementService | None = None,
        publisher: OrderEventPublisher | None = None,
        withdraw_min_cents: int | None = None,
    ) -> None:
        self._config = config or SettlementConfig.from_settings()
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._timeline: TimelineRepositoryProtocol = timeline_repo or TimelineRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._catalog: CatalogRepositoryProtocol = catalog_repo or CatalogRepository()
        self._gateway: PaymentGatewayProtocol = gateway or build_payment_gateway(self._config.mode)
        self._settlement = settlement or SettlementService(self._ledger, self._config)
        self._publisher = publisher or OrderEventPublisher()
        self._withdraw_min = (
            settings.WITHDRAW_MIN_CENTS if withdraw_min_cents is None else withdraw_min_cents
        )

    async def _get_owned_order(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        order = await self._orders.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != user_id:
            raise ForbiddenError()
        return order

    async def _record_payment(self, db: AsyncSession, order: Order, content: str) -> Order | None:
        """Flip is_paid for an order observed unpaid. Caller owns the transaction.

        Returns None when the conditional update matched nothing (a concurrent
        payment got there first, or the status moved under us).
        """
        new_status = _PAID_NEXT_STATUS.get(order.status, order.status)
        updated = await self._orders.mark_paid(
            db, order.id, order.status, new_status, PAYMENT_METHOD
        )
        if updated is None:
            return None
        await self._timeline.append(
            db, order.id, TimelineEvent.PAID.value, content, OperatorRole.SYSTEM.value
        )
        if order.status == S.PENDING_CONFIRM.value:
            # Pay-after-service: this payment is what completes the order
            await self._settlement.settle_order_income(db, updated)
        return updated

    async def create_payment(
        self, db: AsyncSession, user_id: str, order_id: str
    ) -> CreatePaymentResponse:
        order = await self._get_owned_order(db, order_id, user_id)
        if order.status not in PAYABLE_STATUSES:
            raise InvalidOrderStateError(order.id, order.status, "pay")
        if order.is_paid:
            raise InvalidOrderStateError(
                order.id, order.status, "pay", detail=f"Order {order.id} is already paid"
            )

        service_type = await self._catalog.get_by_id(db, order.service_type_id)
        description = f"Eldercare - {service_type.name}" if service_type else "Eldercare service"
        handle = await self._gateway.create_prepay(order, description)

        if not self._config.is_sandbox:
            # Production: the signed callback is what moves the order
            return CreatePaymentResponse(
                order_id=order.id,
                order_no=order.order_no,
                status=order.status,
                is_paid=False,
                payment=PaymentHandleResponse.from_domain(handle),
                message="Payment created, awaiting confirmation",
            )

        post_service = order.status == S.PENDING_CONFIRM.value
        content = (
            "Order paid, service completed (sandbox)" if post_service else "Order paid (sandbox)"
        )
        try:
            updated = await self._record_payment(db, order, content)
            if updated is None:
                raise InvalidOrderStateError(
                    order.id, order.status, "pay", detail=f"Order {order.id} changed during payment"
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning("Sandbox payment applied to order %s without a gateway callback", order.id)
        await self._publisher.publish(TimelineEvent.PAID.value, updated)
        return CreatePaymentResponse(
            order_id=updated.id,
            order_no=updated.order_no,
            status=updated.status,
            is_paid=True,
            payment=PaymentHandleResponse.from_domain(handle),
            message="Payment succeeded, order completed" if post_service else "Payment succeeded",
        )

    async def handle_callback(
        self, db: AsyncSession, headers: Mapping[str, str], body: bytes
    ) -> dict[str, str]:
        """Apply a gateway callback. Returns the provider-format ack.

        InvalidSignatureError propagates; every other outcome is an ack so the
        provider stops (SUCCESS) or keeps (FAIL) retrying.
        """
        notification = self._gateway.verify_callback(headers, body)
        if not notification.succeeded:
            logger.info(
                "Payment callback for %s with trade_state=%s; no change",
                notification.out_trade_no,
                notification.trade_state,
            )
            return ACK_SUCCESS

        order = await self._orders.get_by_order_no(db, notification.out_trade_no)
        if order is None:
            logger.warning("Payment callback for unknown order_no %s", notification.out_trade_no)
            return _ack_fail("order not found")
        if notification.amount_total != order.price:
            logger.error(
                "Payment callback amount mismatch for order %s: paid %d, price %d",
                order.id,
                notification.amount_total,
                order.price,
            )
            return _ack_fail("amount mismatch")

        for _ in range(CALLBACK_APPLY_ATTEMPTS):
            if order.is_paid:
                logger.info("Duplicate payment callback for order %s ignored", order.id)
                return ACK_SUCCESS
            if order.status == S.REFUNDED.value:
                logger.warning("Payment for refunded order %s ignored", order.id)
                return ACK_SUCCESS

            try:
                updated = await self._record_payment(db, order, "Order paid")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            if updated is not None:
                break

            # Status moved between read and update
            logger.info(
                "Order %s changed from %s while applying payment; re-reading",
                order.id,
                order.status,
            )
            refreshed = await self._orders.get_by_order_no(db, notification.out_trade_no)
            if refreshed is None:
                return _ack_fail("order not found")
            order = refreshed
        else:
            logger.warning(
                "Payment for order %s not applied after %d attempts; gateway will redeliver",
                order.id,
                CALLBACK_APPLY_ATTEMPTS,
            )
            return _ack_fail("order busy, retry later")

        logger.info(
            "Order %s paid (transaction %s), status %s",
            order.id,
            notification.transaction_id,
            updated.status,
        )
        await self._publisher.publish(TimelineEvent.PAID.value, updated)
        return ACK_SUCCESS

    async def refund(
        self, db: AsyncSession, user_id: str, order_id: str, reason: str
    ) -> RefundResponse:
        order = await self._get_owned_order(db, order_id, user_id)
        ensure_transition_allowed(order, REFUND)
        if not order.is_paid:
            raise InvalidOrderStateError(
                order.id, order.status, "refund", detail=f"Order {order.id} is not paid; nothing to refund"
            )
        return await self._refund_paid_order(db, order, reason)

    async def _refund_paid_order(self, db: AsyncSession, order: Order, reason: str) -> RefundResponse:
        refund_id = await self._gateway.refund(order, reason)
        try:
            updated = await self._orders.apply_transition(db, order.id, REFUND, order.user_id)
            if updated is None:
                logger.error(
                    "Order %s refunded at gateway (%s) but status changed concurrently",
                    order.id,
                    refund_id,
                )
                raise InvalidOrderStateError(order.id, order.status, "refund")
            await self._timeline.append(
                db,
                order.id,
                REFUND.event.value,
                f"{REFUND.content}: {reason}",
                REFUND.operator.value,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s refunded: %s", order.id, refund_id)
        await self._publisher.publish(REFUND.event.value, updated)
        return RefundResponse(
            order_id=updated.id,
            status=updated.status,
            refund_id=refund_id,
            message="Refund submitted, expected back on the original payment method in 1-3 business days",
        )

    async def refund_cancelled_order(
        self, db: AsyncSession, order: Order, reason: str
    ) -> RefundResponse:
        """Refund step of cancelling a paid order; the cancel is already committed."""
        return await self._refund_paid_order(db, order, reason)

    async def withdraw(
        self,
        db: AsyncSession,
        angel_id: str,
        amount_cents: int,
        method: WithdrawMethod,
        bank_card_id: str | None = None,
    ) -> WithdrawResponse:
        if amount_cents < self._withdraw_min:
            raise ValidationFailedError(
                f"Minimum withdrawal is {cents_to_display(self._withdraw_min)}"
            )
        if method == WithdrawMethod.BANK and not bank_card_id:
            raise ValidationFailedError("bank_card_id is required for bank withdrawals")

        try:
            record = await self._ledger.withdraw(
                db,
                angel_id,
                amount_cents,
                f"Withdrawal to {_WITHDRAW_METHOD_NAMES[method]}",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Angel %s withdrew %s via %s", angel_id, cents_to_display(amount_cents), method.value
        )
        return WithdrawResponse.from_record(record, method.value)

    async def list_income(
        self, db: AsyncSession, angel_id: str, cursor: str | None, limit: int
    ) -> IncomeListResponse:
        balance = await self._ledger.get_balance(db, angel_id) or 0
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        records = await self._ledger.list_income(db, angel_id, cursor_id, limit + 1)
        has_more = len(records) > limit
        page = records[:limit]
        return IncomeListResponse(
            balance_cents=balance,
            balance_display=cents_to_display(balance),
            items=[IncomeRecordItem.from_domain(r) for r in page],
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )
