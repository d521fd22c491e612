"""006: create trades table

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
        CREATE TABLE trades (
            id                  VARCHAR(64)     PRIMARY KEY,
            creator_id          VARCHAR(64)     NOT NULL,
            creator_name        VARCHAR(64)     NOT NULL,
            taker_id            VARCHAR(64),
            taker_name          VARCHAR(64),
            offer_kind          VARCHAR(10)     NOT NULL,
            offer_items         JSONB           NOT NULL,
            request_item_id     VARCHAR(64),
            request_qty         INTEGER,
            is_any              BOOLEAN         NOT NULL DEFAULT FALSE,
            trade_type          VARCHAR(10)     NOT NULL,
            status              VARCHAR(12)     NOT NULL DEFAULT 'OPEN',
            creator_confirmed   BOOLEAN         NOT NULL DEFAULT FALSE,
            taker_confirmed     BOOLEAN         NOT NULL DEFAULT FALSE,
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            completed_at        TIMESTAMPTZ,
            CONSTRAINT ck_trades_status CHECK (
                status IN ('OPEN', 'PENDING', 'COMPLETED', 'CANCELLED')
            ),
            CONSTRAINT ck_trades_type CHECK (trade_type IN ('FIXED', 'AUCTION')),
            CONSTRAINT ck_trades_offer_kind CHECK (offer_kind IN ('SINGLE', 'BUNDLE')),
            CONSTRAINT ck_trades_offer_items_array CHECK (jsonb_typeof(offer_items) = 'array'),
            CONSTRAINT ck_trades_request CHECK (
                (is_any AND trade_type = 'AUCTION'
                    AND request_item_id IS NULL AND request_qty IS NULL)
                OR (NOT is_any AND request_item_id IS NOT NULL AND request_qty > 0)
            ),
            CONSTRAINT ck_trades_taker_not_creator CHECK (
                taker_id IS NULL OR taker_id <> creator_id
            ),
            CONSTRAINT ck_trades_taker_when_committed CHECK (
                status IN ('OPEN', 'CANCELLED') OR taker_id IS NOT NULL
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_trades_open ON trades (trade_type, id DESC) WHERE status = 'OPEN';"
    )
    op.execute("CREATE INDEX idx_trades_creator ON trades (creator_id, status);")
    op.execute(
        "CREATE INDEX idx_trades_taker ON trades (taker_id, status) WHERE taker_id IS NOT NULL;"
    )
    op.execute("""
        CREATE TRIGGER trg_trades_updated_at
            BEFORE UPDATE ON trades
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
