"""Per-item conservation check.

For every catalog item:

    Σ balances + Σ open reservations == Σ external adjustments

Open reservations are creator offers of OPEN/PENDING trades, taker stakes of
PENDING trades, and every bid row still on file. External adjustments are the
ADJUST and ADMIN_SET audit entries; trade and bid flows are zero-sum and
never change the right-hand side.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_CONSERVATION_SQL = text("""
    WITH external AS (
        SELECT item_id, SUM(amount) AS total
        FROM inventory_ledger_entries
        WHERE entry_type IN ('ADJUST', 'ADMIN_SET')
        GROUP BY item_id
    ),
    balances AS (
        SELECT item_id, SUM(quantity) AS total
        FROM inventory
        GROUP BY item_id
    ),
    offers AS (
        SELECT stake->>'item_id' AS item_id, SUM((stake->>'qty')::INT) AS total
        FROM trades t, jsonb_array_elements(t.offer_items) AS stake
        WHERE t.status IN ('OPEN', 'PENDING')
        GROUP BY stake->>'item_id'
    ),
    takers AS (
        SELECT request_item_id AS item_id, SUM(request_qty) AS total
        FROM trades
        WHERE status = 'PENDING'
        GROUP BY request_item_id
    ),
    bids AS (
        SELECT item_id, SUM(qty) AS total
        FROM trade_bids
        GROUP BY item_id
    )
    SELECT it.id AS item_id,
           COALESCE(external.total, 0) AS external_total,
           COALESCE(balances.total, 0) AS balance_total,
           COALESCE(offers.total, 0) + COALESCE(takers.total, 0)
               + COALESCE(bids.total, 0) AS reserved_total
    FROM items it
    LEFT JOIN external ON external.item_id = it.id
    LEFT JOIN balances ON balances.item_id = it.id
    LEFT JOIN offers ON offers.item_id = it.id
    LEFT JOIN takers ON takers.item_id = it.id
    LEFT JOIN bids ON bids.item_id = it.id
    ORDER BY it.id
""")


@dataclass(frozen=True)
class ItemConservation:
    item_id: str
    external_total: int
    balance_total: int
    reserved_total: int

    @property
    def holdings(self) -> int:
        return self.balance_total + self.reserved_total

    @property
    def drift(self) -> int:
        return self.holdings - self.external_total


def find_violations(rows: list[ItemConservation]) -> list[str]:
    violations: list[str] = []
    for row in rows:
        if row.drift != 0:
            msg = (
                f"Conservation violated for item {row.item_id}: "
                f"balances({row.balance_total}) + reserved({row.reserved_total}) "
                f"= {row.holdings} != external_adjustments({row.external_total})"
            )
            violations.append(msg)
            logger.error(msg)
    return violations


def _row_to_conservation(row: Any) -> ItemConservation:
    return ItemConservation(
        item_id=str(row.item_id),
        external_total=int(row.external_total),
        balance_total=int(row.balance_total),
        reserved_total=int(row.reserved_total),
    )


async def load_conservation(db: AsyncSession) -> list[ItemConservation]:
    rows = (await db.execute(_CONSERVATION_SQL)).fetchall()
    return [_row_to_conservation(row) for row in rows]
