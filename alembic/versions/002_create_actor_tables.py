"""002: create actor tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE family_members (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(64),
            phone           VARCHAR(20),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_family_members_phone UNIQUE (phone)
        );
    """)
    op.execute("""
        CREATE TABLE elderly (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES family_members(id),
            name            VARCHAR(64),
            phone           VARCHAR(20),
            address         VARCHAR(255),
            lat             DOUBLE PRECISION,
            lng             DOUBLE PRECISION,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_elderly_user ON elderly (user_id);")
    op.execute("""
        CREATE TABLE angels (
            id                  VARCHAR(64)     PRIMARY KEY,
            name                VARCHAR(64),
            phone               VARCHAR(20),
            balance             BIGINT          NOT NULL DEFAULT 0,
            completed_orders    INTEGER         NOT NULL DEFAULT 0,
            rating              DOUBLE PRECISION,
            is_verified         BOOLEAN         NOT NULL DEFAULT FALSE,
            is_online           BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_angels_phone UNIQUE (phone),
            CONSTRAINT ck_angels_balance_non_negative CHECK (balance >= 0),
            CONSTRAINT ck_angels_rating_range CHECK (rating IS NULL OR (rating >= 1 AND rating <= 5))
        );
    """)
    for table in ("family_members", "elderly", "angels"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)
    op.execute("COMMENT ON COLUMN angels.balance IS '缓存余额（分），以 income_records 为准';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS angels CASCADE;")
    op.execute("DROP TABLE IF EXISTS elderly CASCADE;")
    op.execute("DROP TABLE IF EXISTS family_members CASCADE;")
