"""003: create service_types table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE service_types (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(64)     NOT NULL,
            price           BIGINT          NOT NULL,
            unit            VARCHAR(16)     NOT NULL DEFAULT '次',
            category        VARCHAR(32),
            description     VARCHAR(500),
            sort_order      INTEGER         NOT NULL DEFAULT 0,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_service_types_price CHECK (price >= 0)
        );
    """)
    op.execute("COMMENT ON COLUMN service_types.price IS '价格（分）';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS service_types CASCADE;")
