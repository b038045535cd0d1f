"""SQLAlchemy ORM model for income_records (DDL reference only — queries use raw SQL)."""
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from src.ec_common.database import Base


class IncomeRecordORM(Base):
    __tablename__ = "income_records"
    __table_args__ = (
        Index("idx_income_records_angel", "angel_id", "id"),
        # one settlement per order
        Index(
            "uq_income_records_order_income",
            "order_id",
            unique=True,
            postgresql_where=text("entry_type = 'ORDER_INCOME'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    angel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    order_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
