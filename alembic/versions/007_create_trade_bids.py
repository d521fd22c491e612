"""007: create trade_bids table

Revision ID: 007
Revises: 006
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trade_bids (
            id              VARCHAR(64)     PRIMARY KEY,
            trade_id        VARCHAR(64)     NOT NULL REFERENCES trades (id),
            bidder_id       VARCHAR(64)     NOT NULL,
            bidder_name     VARCHAR(64)     NOT NULL,
            item_id         VARCHAR(64)     NOT NULL REFERENCES items (id) ON DELETE CASCADE,
            qty             INTEGER         NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trade_bids_qty_gt_0 CHECK (qty > 0)
        );
    """)
    op.execute("CREATE INDEX idx_trade_bids_trade ON trade_bids (trade_id, created_at);")
    op.execute(
        "COMMENT ON TABLE trade_bids IS "
        "'Outstanding auction bids; each row is the receipt for a reserved stake';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trade_bids CASCADE;")
