"""004: create orders table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(32)     PRIMARY KEY,
            order_no            VARCHAR(40)     NOT NULL,
            user_id             VARCHAR(64)     NOT NULL REFERENCES family_members(id),
            elderly_id          VARCHAR(64)     NOT NULL REFERENCES elderly(id),
            service_type_id     VARCHAR(64)     NOT NULL REFERENCES service_types(id),
            angel_id            VARCHAR(64)     REFERENCES angels(id),
            price               BIGINT          NOT NULL,
            service_time        TIMESTAMPTZ     NOT NULL,
            address             VARCHAR(255)    NOT NULL,
            lat                 DOUBLE PRECISION,
            lng                 DOUBLE PRECISION,
            remark              VARCHAR(500),
            is_asap             BOOLEAN         NOT NULL DEFAULT FALSE,
            status              VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            is_paid             BOOLEAN         NOT NULL DEFAULT FALSE,
            payment_method      VARCHAR(20),
            rating              SMALLINT,
            comment             VARCHAR(500),
            cancel_reason       VARCHAR(200),
            completion_remark   VARCHAR(500),
            completion_images   TEXT[]          NOT NULL DEFAULT '{}',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            accepted_at         TIMESTAMPTZ,
            departed_at         TIMESTAMPTZ,
            arrived_at          TIMESTAMPTZ,
            started_at          TIMESTAMPTZ,
            completed_at        TIMESTAMPTZ,
            cancelled_at        TIMESTAMPTZ,
            paid_at             TIMESTAMPTZ,
            refunded_at         TIMESTAMPTZ,
            rated_at            TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_order_no UNIQUE (order_no),
            CONSTRAINT ck_orders_status CHECK (status IN (
                'PENDING', 'PAID', 'ACCEPTED', 'ON_WAY', 'ARRIVED', 'IN_PROGRESS',
                'PENDING_CONFIRM', 'COMPLETED', 'CANCELLED', 'REFUNDED'
            )),
            CONSTRAINT ck_orders_price CHECK (price >= 0),
            CONSTRAINT ck_orders_rating CHECK (rating IS NULL OR rating BETWEEN 1 AND 5),
            CONSTRAINT ck_orders_angel_assigned CHECK (
                angel_id IS NOT NULL
                OR status IN ('PENDING', 'PAID', 'CANCELLED', 'REFUNDED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (user_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_angel ON orders (angel_id, id DESC) WHERE angel_id IS NOT NULL;")
    op.execute("CREATE INDEX idx_orders_elderly ON orders (elderly_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_orders_open_location ON orders (lat, lng)
        WHERE angel_id IS NULL AND status IN ('PENDING', 'PAID');
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON COLUMN orders.price IS '下单时从服务目录复制的价格（分），此后不变';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
