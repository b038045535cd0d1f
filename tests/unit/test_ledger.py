"""Unit tests for LedgerRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ec_common.errors import EntityNotFoundError, InsufficientBalanceError, InternalError
from src.ec_payment.infrastructure.ledger import LedgerRepository


def _result(row: Any = None, rows: list[Any] | None = None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


def _income_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.angel_id = kwargs.get("angel_id", "a-1")
    row.entry_type = kwargs.get("entry_type", "ORDER_INCOME")
    row.amount = kwargs.get("amount", 6400)
    row.balance_after = kwargs.get("balance_after", 6400)
    row.description = kwargs.get("description", "Order income")
    row.order_id = kwargs.get("order_id", "o-1")
    row.created_at = kwargs.get("created_at", datetime.now(UTC))
    return row


def _balance_row(balance: int) -> MagicMock:
    row = MagicMock()
    row.balance = balance
    return row


class TestCredit:
    async def test_credit_then_insert(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(_balance_row(6400)), _result(_income_row())]

        record = await LedgerRepository().credit_order_income(db, "a-1", "o-1", 6400, "income")

        assert record.amount == 6400
        assert db.execute.await_count == 2
        insert_params = db.execute.call_args_list[1].args[1]
        assert insert_params["balance_after"] == 6400
        assert insert_params["entry_type"] == "ORDER_INCOME"
        assert insert_params["order_id"] == "o-1"

    async def test_credit_missing_angel(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)
        with pytest.raises(InternalError):
            await LedgerRepository().credit_order_income(db, "a-x", "o-1", 6400, "income")


class TestWithdraw:
    async def test_withdraw_records_negative_amount(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(_balance_row(1400)),
            _result(_income_row(entry_type="WITHDRAW", amount=-5000, balance_after=1400, order_id=None)),
        ]

        record = await LedgerRepository().withdraw(db, "a-1", 5000, "Withdrawal")

        assert record.amount == -5000
        insert_params = db.execute.call_args_list[1].args[1]
        assert insert_params["amount"] == -5000
        assert insert_params["order_id"] is None
        assert "balance >= :amount" in str(db.execute.call_args_list[0].args[0])

    async def test_insufficient_balance(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(None), _result(_balance_row(300))]

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await LedgerRepository().withdraw(db, "a-1", 5000, "Withdrawal")
        assert "300" in exc_info.value.message

    async def test_unknown_angel(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(None), _result(None)]
        with pytest.raises(EntityNotFoundError):
            await LedgerRepository().withdraw(db, "a-x", 5000, "Withdrawal")


class TestReads:
    async def test_get_order_income_none(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)
        assert await LedgerRepository().get_order_income(db, "o-1") is None

    async def test_list_income_passes_cursor(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[_income_row(id=5), _income_row(id=4)])

        records = await LedgerRepository().list_income(db, "a-1", 6, 21)

        assert [r.id for r in records] == [5, 4]
        assert db.execute.call_args.args[1] == {"angel_id": "a-1", "cursor_id": 6, "limit": 21}

    async def test_balance_mismatches(self) -> None:
        row = MagicMock()
        row.angel_id = "a-1"
        row.cached_balance = 6500
        row.ledger_balance = 6400
        db = AsyncMock()
        db.execute.return_value = _result(rows=[row])

        mismatches = await LedgerRepository().find_balance_mismatches(db)

        assert len(mismatches) == 1
        assert mismatches[0].difference == 100

    async def test_unsettled_ids(self) -> None:
        row = MagicMock()
        row.id = "o-7"
        db = AsyncMock()
        db.execute.return_value = _result(rows=[row])
        assert await LedgerRepository().find_unsettled_order_ids(db, 10) == ["o-7"]
