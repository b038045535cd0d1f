"""LedgerRepository Protocol — angel balance cache plus append-only income ledger.

Every balance change and its ledger row are written inside the caller's
transaction; implementations never commit.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_payment.domain.models import BalanceMismatch, IncomeRecord


class LedgerRepositoryProtocol(Protocol):
    async def get_balance(self, db: AsyncSession, angel_id: str) -> int | None: ...

    async def get_order_income(self, db: AsyncSession, order_id: str) -> IncomeRecord | None: ...

    async def credit_order_income(
        self,
        db: AsyncSession,
        angel_id: str,
        order_id: str,
        amount: int,
        description: str,
    ) -> IncomeRecord: ...

    async def withdraw(
        self,
        db: AsyncSession,
        angel_id: str,
        amount: int,
        description: str,
    ) -> IncomeRecord: ...

    async def list_income(
        self,
        db: AsyncSession,
        angel_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[IncomeRecord]: ...

    async def find_balance_mismatches(self, db: AsyncSession) -> list[BalanceMismatch]: ...

    async def find_unsettled_order_ids(self, db: AsyncSession, limit: int) -> list[str]: ...
