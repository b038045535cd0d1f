# src/ec_admin/application/service.py
"""Reconciliation service — detect and repair ledger drift.

Two checks:
  - angels whose cached balance differs from the sum of their income records
  - COMPLETED orders with an angel but no ORDER_INCOME record (a crash or
    failure between completion and settlement)
Repair only covers the second: each unsettled order is settled through the
normal idempotent path in its own transaction. Balance drift is reported
for manual review.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.enums import OrderStatus
from src.ec_order.domain.repository import OrderRepositoryProtocol
from src.ec_order.infrastructure.persistence import OrderRepository
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.reconciliation import ReconciliationReport, SettleRunResult
from src.ec_payment.domain.repository import LedgerRepositoryProtocol
from src.ec_payment.domain.settlement import SettlementService
from src.ec_payment.infrastructure.ledger import LedgerRepository
from src.ec_timeline.domain.history import find_history_violations
from src.ec_timeline.domain.repository import TimelineRepositoryProtocol
from src.ec_timeline.infrastructure.persistence import TimelineRepository

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 500


class ReconciliationService:
    def __init__(
        self,
        ledger: LedgerRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
        timeline_repo: TimelineRepositoryProtocol | None = None,
        settlement: SettlementService | None = None,
    ) -> None:
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._timeline: TimelineRepositoryProtocol = timeline_repo or TimelineRepository()
        self._settlement = settlement or SettlementService(
            self._ledger, SettlementConfig.from_settings()
        )

    async def report(self, db: AsyncSession, limit: int = DEFAULT_SCAN_LIMIT) -> ReconciliationReport:
        report = ReconciliationReport(
            balance_mismatches=await self._ledger.find_balance_mismatches(db),
            unsettled_order_ids=await self._ledger.find_unsettled_order_ids(db, limit),
        )
        for order_id in report.unsettled_order_ids:
            entries = await self._timeline.list_by_order(db, order_id)
            violations = find_history_violations([e.event for e in entries])
            if violations:
                report.timeline_violations[order_id] = violations

        if not report.ok:
            logger.warning(
                "Reconciliation: %d balance mismatches, %d unsettled orders, %d bad timelines",
                len(report.balance_mismatches),
                len(report.unsettled_order_ids),
                len(report.timeline_violations),
            )
        return report

    async def settle_unsettled(
        self, db: AsyncSession, limit: int = DEFAULT_SCAN_LIMIT
    ) -> SettleRunResult:
        result = SettleRunResult()
        order_ids = await self._ledger.find_unsettled_order_ids(db, limit)
        for order_id in order_ids:
            order = await self._orders.get_by_id(db, order_id)
            if order is None or order.status != OrderStatus.COMPLETED.value:
                result.skipped.append(order_id)
                continue
            try:
                record = await self._settlement.settle_order_income(db, order)
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("Reconciliation could not settle order %s", order_id)
                result.failed.append(order_id)
                continue
            if record is None:
                result.skipped.append(order_id)
            else:
                result.settled.append(order_id)

        logger.info(
            "Reconciliation settle run: settled=%d skipped=%d failed=%d",
            len(result.settled),
            len(result.skipped),
            len(result.failed),
        )
        return result
