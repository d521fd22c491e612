"""005: create inventory_ledger_entries table

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
        CREATE TABLE inventory_ledger_entries (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            item_id         VARCHAR(64)     NOT NULL REFERENCES items (id) ON DELETE CASCADE,
            entry_type      VARCHAR(30)     NOT NULL,
            amount          INTEGER         NOT NULL,
            balance_after   INTEGER         NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_inv_ledger_entry_type CHECK (
                entry_type IN (
                    'ADJUST', 'ADMIN_SET',
                    'TRADE_RESERVE', 'TRADE_RELEASE',
                    'TAKER_RESERVE', 'TAKER_RELEASE',
                    'TRADE_SETTLE',
                    'BID_RESERVE', 'BID_REFUND'
                )
            ),
            CONSTRAINT ck_inv_ledger_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_inv_ledger_user ON inventory_ledger_entries (user_id, id DESC);"
    )
    op.execute("""
        CREATE INDEX idx_inv_ledger_reference
        ON inventory_ledger_entries (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute(
        "COMMENT ON TABLE inventory_ledger_entries IS "
        "'Inventory audit trail; append-only, rows are never updated';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS inventory_ledger_entries CASCADE;")
