"""003: create items table (catalog, read-only to this service)

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
        CREATE TABLE items (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            name            VARCHAR(128)    NOT NULL,
            brand           VARCHAR(128)    NOT NULL DEFAULT '',
            icon            VARCHAR(512)    NOT NULL DEFAULT '',
            color           VARCHAR(32)     NOT NULL DEFAULT '',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("COMMENT ON TABLE items IS 'Tradeable item catalog; managed outside this service';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS items CASCADE;")
