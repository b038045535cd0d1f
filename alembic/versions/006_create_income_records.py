"""006: create income_records table

Revision ID: 006
Revises: 005
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE income_records (
            id              BIGSERIAL       PRIMARY KEY,
            angel_id        VARCHAR(64)     NOT NULL REFERENCES angels(id),
            entry_type      VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            description     VARCHAR(200),
            order_id        VARCHAR(32)     REFERENCES orders(id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_income_records_type CHECK (entry_type IN ('ORDER_INCOME', 'WITHDRAW')),
            CONSTRAINT ck_income_records_sign CHECK (
                (entry_type = 'ORDER_INCOME' AND amount >= 0 AND order_id IS NOT NULL)
                OR (entry_type = 'WITHDRAW' AND amount < 0)
            )
        );
    """)
    op.execute("CREATE INDEX idx_income_records_angel ON income_records (angel_id, id);")
    # Settlement idempotency key: at most one ORDER_INCOME per order
    op.execute("""
        CREATE UNIQUE INDEX uq_income_records_order_income
            ON income_records (order_id)
            WHERE entry_type = 'ORDER_INCOME';
    """)
    op.execute("COMMENT ON TABLE income_records IS '天使收入流水 — 只追加，余额以此为准';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS income_records CASCADE;")
