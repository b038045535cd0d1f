"""005: create order_timelines table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE order_timelines (
            id              BIGSERIAL       PRIMARY KEY,
            order_id        VARCHAR(32)     NOT NULL REFERENCES orders(id),
            event           VARCHAR(32)     NOT NULL,
            content         VARCHAR(500)    NOT NULL,
            operator        VARCHAR(16)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_order_timelines_operator CHECK (operator IN ('SYSTEM', 'FAMILY', 'ANGEL'))
        );
    """)
    op.execute("CREATE INDEX idx_order_timelines_order ON order_timelines (order_id, created_at, id);")
    op.execute("COMMENT ON TABLE order_timelines IS '订单时间线 — 只追加，不更新不删除';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_timelines CASCADE;")
