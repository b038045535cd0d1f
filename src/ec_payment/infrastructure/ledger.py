"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Balance mutations use atomic PostgreSQL UPDATE ... RETURNING followed by the
ledger INSERT carrying the returned balance as balance_after. A result of 0
rows on withdraw means the balance did not cover the amount.

Transaction ownership: the CALLER commits or rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.enums import IncomeEntryType, OrderStatus
from src.ec_common.errors import EntityNotFoundError, InsufficientBalanceError, InternalError
from src.ec_payment.domain.models import BalanceMismatch, IncomeRecord

# ---------------------------------------------------------------------------
# SQL: angels balance mutations
# ---------------------------------------------------------------------------

_CREDIT_ANGEL_SQL = text("""
    UPDATE angels
    SET balance = balance + :amount,
        completed_orders = completed_orders + 1,
        updated_at = NOW()
    WHERE id = :angel_id
    RETURNING balance
""")

# A successful withdrawal also marks the angel verified
_DEBIT_ANGEL_SQL = text("""
    UPDATE angels
    SET balance = balance - :amount,
        is_verified = TRUE,
        updated_at = NOW()
    WHERE id = :angel_id AND balance >= :amount
    RETURNING balance
""")

_GET_BALANCE_SQL = text("SELECT balance FROM angels WHERE id = :angel_id")

# ---------------------------------------------------------------------------
# SQL: income_records
# ---------------------------------------------------------------------------

_INCOME_COLUMNS = "id, angel_id, entry_type, amount, balance_after, description, order_id, created_at"

_INSERT_INCOME_SQL = text(f"""
    INSERT INTO income_records
        (angel_id, entry_type, amount, balance_after, description, order_id)
    VALUES
        (:angel_id, :entry_type, :amount, :balance_after, :description, :order_id)
    RETURNING {_INCOME_COLUMNS}
""")

_GET_ORDER_INCOME_SQL = text(f"""
    SELECT {_INCOME_COLUMNS}
    FROM income_records
    WHERE order_id = :order_id AND entry_type = '{IncomeEntryType.ORDER_INCOME.value}'
""")

_LIST_INCOME_SQL = text(f"""
    SELECT {_INCOME_COLUMNS}
    FROM income_records
    WHERE angel_id = :angel_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: reconciliation
# ---------------------------------------------------------------------------

_BALANCE_MISMATCH_SQL = text("""
    SELECT a.id AS angel_id,
           a.balance AS cached_balance,
           COALESCE(SUM(r.amount), 0) AS ledger_balance
    FROM angels a
    LEFT JOIN income_records r ON r.angel_id = a.id
    GROUP BY a.id, a.balance
    HAVING a.balance <> COALESCE(SUM(r.amount), 0)
    ORDER BY a.id
""")

_UNSETTLED_ORDERS_SQL = text(f"""
    SELECT o.id
    FROM orders o
    WHERE o.status = '{OrderStatus.COMPLETED.value}'
      AND o.angel_id IS NOT NULL
      AND NOT EXISTS (
          SELECT 1 FROM income_records r
          WHERE r.order_id = o.id
            AND r.entry_type = '{IncomeEntryType.ORDER_INCOME.value}'
      )
    ORDER BY o.completed_at ASC, o.id ASC
    LIMIT :limit
""")


def _row_to_income(row: Any) -> IncomeRecord:
    return IncomeRecord(
        id=row.id,
        angel_id=row.angel_id,
        entry_type=row.entry_type,
        amount=row.amount,
        balance_after=row.balance_after,
        description=row.description,
        order_id=row.order_id,
        created_at=row.created_at,
    )


class LedgerRepository:
    """Concrete repository — every balance change paired with one ledger row."""

    async def get_balance(self, db: AsyncSession, angel_id: str) -> int | None:
        result = await db.execute(_GET_BALANCE_SQL, {"angel_id": angel_id})
        row = result.fetchone()
        return int(row.balance) if row else None

    async def get_order_income(self, db: AsyncSession, order_id: str) -> IncomeRecord | None:
        result = await db.execute(_GET_ORDER_INCOME_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_income(row) if row else None

    async def credit_order_income(
        self,
        db: AsyncSession,
        angel_id: str,
        order_id: str,
        amount: int,
        description: str,
    ) -> IncomeRecord:
        result = await db.execute(_CREDIT_ANGEL_SQL, {"angel_id": angel_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Angel {angel_id} missing while settling order {order_id}")
        return await self._insert_income(
            db,
            angel_id=angel_id,
            entry_type=IncomeEntryType.ORDER_INCOME,
            amount=amount,
            balance_after=row.balance,
            description=description,
            order_id=order_id,
        )

    async def withdraw(
        self,
        db: AsyncSession,
        angel_id: str,
        amount: int,
        description: str,
    ) -> IncomeRecord:
        result = await db.execute(_DEBIT_ANGEL_SQL, {"angel_id": angel_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            available = await self.get_balance(db, angel_id)
            if available is None:
                raise EntityNotFoundError("Angel", angel_id)
            raise InsufficientBalanceError(required=amount, available=available)
        return await self._insert_income(
            db,
            angel_id=angel_id,
            entry_type=IncomeEntryType.WITHDRAW,
            amount=-amount,
            balance_after=row.balance,
            description=description,
            order_id=None,
        )

    async def list_income(
        self,
        db: AsyncSession,
        angel_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[IncomeRecord]:
        result = await db.execute(
            _LIST_INCOME_SQL,
            {"angel_id": angel_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_income(row) for row in result.fetchall()]

    async def find_balance_mismatches(self, db: AsyncSession) -> list[BalanceMismatch]:
        result = await db.execute(_BALANCE_MISMATCH_SQL)
        return [
            BalanceMismatch(
                angel_id=row.angel_id,
                cached_balance=int(row.cached_balance),
                ledger_balance=int(row.ledger_balance),
            )
            for row in result.fetchall()
        ]

    async def find_unsettled_order_ids(self, db: AsyncSession, limit: int) -> list[str]:
        result = await db.execute(_UNSETTLED_ORDERS_SQL, {"limit": limit})
        return [row.id for row in result.fetchall()]

    async def _insert_income(
        self,
        db: AsyncSession,
        angel_id: str,
        entry_type: IncomeEntryType,
        amount: int,
        balance_after: int,
        description: str,
        order_id: str | None,
    ) -> IncomeRecord:
        result = await db.execute(
            _INSERT_INCOME_SQL,
            {
                "angel_id": angel_id,
                "entry_type": entry_type.value,
                "amount": amount,
                "balance_after": balance_after,
                "description": description,
                "order_id": order_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Income record insert returned no rows")
        return _row_to_income(row)
