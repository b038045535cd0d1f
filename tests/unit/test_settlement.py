"""Unit tests for SettlementService and SettlementConfig."""

import logging
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ec_common.enums import PaymentMode
from src.ec_order.domain.models import Order
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.models import IncomeRecord
from src.ec_payment.domain.settlement import SettlementService


def _order(angel_id: str | None = "a-1", price: int = 8000) -> Order:
    return Order(
        id="o-1",
        order_no="20261017000001",
        user_id="u-1",
        elderly_id="e-1",
        service_type_id="ST-ESCORT-MEDICAL",
        price=price,
        service_time=datetime.now(UTC),
        address="addr",
        status="COMPLETED",
        angel_id=angel_id,
    )


def _record(amount: int = 6400) -> IncomeRecord:
    return IncomeRecord(
        id=1, angel_id="a-1", entry_type="ORDER_INCOME", amount=amount, balance_after=amount, order_id="o-1"
    )


class TestSettlementConfig:
    def test_defaults(self) -> None:
        config = SettlementConfig()
        assert config.mode == PaymentMode.PRODUCTION
        assert config.commission_bps == 2000
        assert config.is_sandbox is False

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_rejects_out_of_range(self, bps: int) -> None:
        with pytest.raises(ValueError):
            SettlementConfig(commission_bps=bps)


class TestSettleOrderIncome:
    async def test_credits_net_income(self) -> None:
        ledger = AsyncMock()
        ledger.get_order_income.return_value = None
        ledger.credit_order_income.return_value = _record()
        svc = SettlementService(ledger, SettlementConfig())

        record = await svc.settle_order_income(MagicMock(), _order())

        assert record is not None
        kwargs = ledger.credit_order_income.await_args.kwargs
        assert kwargs["amount"] == 6400
        assert kwargs["angel_id"] == "a-1"
        assert kwargs["order_id"] == "o-1"

    async def test_commission_rate_is_configurable(self) -> None:
        ledger = AsyncMock()
        ledger.get_order_income.return_value = None
        ledger.credit_order_income.return_value = _record(7000)
        svc = SettlementService(ledger, SettlementConfig(commission_bps=1250))

        await svc.settle_order_income(MagicMock(), _order(price=8000))

        assert ledger.credit_order_income.await_args.kwargs["amount"] == 7000

    async def test_already_settled_is_noop(self) -> None:
        ledger = AsyncMock()
        ledger.get_order_income.return_value = _record()
        svc = SettlementService(ledger, SettlementConfig())

        assert await svc.settle_order_income(MagicMock(), _order()) is None
        ledger.credit_order_income.assert_not_awaited()

    async def test_no_angel_is_noop(self) -> None:
        ledger = AsyncMock()
        svc = SettlementService(ledger, SettlementConfig())

        assert await svc.settle_order_income(MagicMock(), _order(angel_id=None)) is None
        ledger.get_order_income.assert_not_awaited()

    async def test_failure_logged_for_reconciliation_and_reraised(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        ledger = AsyncMock()
        ledger.get_order_income.return_value = None
        ledger.credit_order_income.side_effect = RuntimeError("unique violation")
        svc = SettlementService(ledger, SettlementConfig())

        with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError):
            await svc.settle_order_income(MagicMock(), _order())

        assert any(
            r.levelno == logging.ERROR and "requires manual reconciliation" in r.getMessage()
            for r in caplog.records
        )
