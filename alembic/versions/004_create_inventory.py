"""004: create inventory table

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
        CREATE TABLE inventory (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            item_id         VARCHAR(64)     NOT NULL REFERENCES items (id) ON DELETE CASCADE,
            quantity        INTEGER         NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_inventory_user_item UNIQUE (user_id, item_id),
            CONSTRAINT ck_inventory_quantity_gte_0 CHECK (quantity >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_inventory_item ON inventory (item_id);")
    op.execute("""
        CREATE TRIGGER trg_inventory_updated_at
            BEFORE UPDATE ON inventory
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE inventory IS "
        "'Unreserved balance per (user, item); reserved units live on trades and bids';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS inventory CASCADE;")
