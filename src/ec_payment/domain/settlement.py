"""Angel income settlement — exactly once per order.

Runs inside the caller's transaction, together with the status change that
triggered it (Confirm, or payment of a PENDING_CONFIRM order). The order id
is the idempotency key: an existing ORDER_INCOME record short-circuits, and
the partial unique index on income_records(order_id) rejects a concurrent
duplicate so the whole transaction rolls back.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.money import calculate_angel_income, cents_to_display
from src.ec_order.domain.models import Order
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.models import IncomeRecord
from src.ec_payment.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(self, ledger: LedgerRepositoryProtocol, config: SettlementConfig) -> None:
        self._ledger = ledger
        self._config = config

    @property
    def config(self) -> SettlementConfig:
        return self._config

    async def settle_order_income(self, db: AsyncSession, order: Order) -> IncomeRecord | None:
        """Credit the assigned angel for a completed order.

        Returns the new IncomeRecord, or None when nothing was credited
        (no angel assigned, or the order was already settled).
        """
        if order.angel_id is None:
            logger.warning("Order %s completed without an angel; nothing to settle", order.id)
            return None

        existing = await self._ledger.get_order_income(db, order.id)
        if existing is not None:
            logger.info(
                "Order %s already settled (income record %s); skipping", order.id, existing.id
            )
            return None

        amount = calculate_angel_income(order.price, self._config.commission_bps)
        try:
            record = await self._ledger.credit_order_income(
                db,
                angel_id=order.angel_id,
                order_id=order.id,
                amount=amount,
                description=f"Order {order.order_no} income",
            )
        except Exception:
            logger.error(
                "Settlement failed for order %s (angel=%s, amount=%d): requires manual reconciliation",
                order.id,
                order.angel_id,
                amount,
                exc_info=True,
            )
            raise

        logger.info(
            "Settled order %s: angel=%s +%s (balance %s)",
            order.id,
            order.angel_id,
            cents_to_display(amount),
            cents_to_display(record.balance_after),
        )
        return record
