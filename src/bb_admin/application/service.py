"""Admin application service: user moderation, stash overrides, reconciliation."""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_admin.domain.invariants import find_violations, load_conservation
from src.bb_common.enums import TradeStatus
from src.bb_common.errors import UserDeletionRefusedError
from src.bb_common.events import (
    ChangePublisherProtocol,
    RedisChangePublisher,
    inventory_changed,
)
from src.bb_gateway.user.service import UserService, to_user_info
from src.bb_inventory.application.schemas import BalanceResponse
from src.bb_inventory.application.service import InventoryApplicationService
from src.bb_inventory.domain.repository import InventoryLedgerProtocol
from src.bb_inventory.infrastructure.persistence import InventoryRepository
from src.bb_trade.application import service as trade_svc
from src.bb_trade.application.schemas import ReleaseBidsResponse, TradeListResponse

logger = logging.getLogger(__name__)

# Trades still holding a stake of the user, plus bids escrowing the user's stock
_OPEN_STAKES_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM trades
         WHERE (creator_id = :user_id OR taker_id = :user_id)
           AND status IN ('OPEN', 'PENDING'))
      + (SELECT COUNT(*) FROM trade_bids WHERE bidder_id = :user_id) AS open_stakes
""")


class AdminService:
    def __init__(
        self,
        users: UserService | None = None,
        inventory: InventoryApplicationService | None = None,
        ledger: InventoryLedgerProtocol | None = None,
        publisher: ChangePublisherProtocol | None = None,
    ) -> None:
        self._users = users or UserService()
        self._inventory = inventory or InventoryApplicationService()
        self._ledger: InventoryLedgerProtocol = ledger or InventoryRepository()
        self._publisher: ChangePublisherProtocol = publisher or RedisChangePublisher()

    async def list_users(self, db: AsyncSession) -> list[dict[str, Any]]:
        return [to_user_info(u).model_dump() for u in await self._users.list_users(db)]

    async def toggle_freeze(self, user_id: str, db: AsyncSession) -> dict[str, Any]:
        try:
            user = await self._users.toggle_freeze(user_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return to_user_info(user).model_dump()

    async def delete_user(self, user_id: str, admin_id: str, db: AsyncSession) -> dict[str, Any]:
        """Remove an account whose stock is all at rest.

        Remaining balances are zeroed through audited ADMIN_SET entries, so
        the conservation check still balances after the account is gone.
        """
        try:
            user = await self._users.get_user(user_id, db)
            uid = str(user.id)
            if uid == admin_id:
                raise UserDeletionRefusedError(uid, "administrators cannot delete themselves")
            open_stakes = (await db.execute(_OPEN_STAKES_SQL, {"user_id": uid})).scalar_one()
            if open_stakes:
                raise UserDeletionRefusedError(
                    uid,
                    f"{open_stakes} open trade(s) or bid(s) still hold stock; "
                    "settle or cancel them first",
                )
            balances = await self._ledger.read_all(db, uid)
            cleared = sorted(item for item, qty in balances.items() if qty > 0)
            for item_id in cleared:
                await self._ledger.set_quantity(
                    db, uid, item_id, 0, description=f"Account deleted by admin {admin_id}"
                )
            await self._users.delete_user(user, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Account removed: user=%s admin=%s cleared_items=%d", uid, admin_id, len(cleared)
        )
        await self._publisher.publish([inventory_changed(uid, item_id) for item_id in cleared])
        return {"user_id": uid, "cleared_items": cleared}

    async def set_inventory(
        self, user_id: str, item_id: str, quantity: int, admin_id: str, db: AsyncSession
    ) -> BalanceResponse:
        user = await self._users.get_user(user_id, db)
        return await self._inventory.set_inventory(db, str(user.id), item_id, quantity, admin_id)

    async def list_all_trades(
        self, status: TradeStatus | None, cursor: str | None, limit: int, db: AsyncSession
    ) -> TradeListResponse:
        return await trade_svc.list_all_trades(status, cursor, limit, db)

    async def release_stale_bids(self, trade_id: str, db: AsyncSession) -> ReleaseBidsResponse:
        return await trade_svc.release_stale_bids(trade_id, db)

    async def verify_invariants(self, db: AsyncSession) -> dict[str, object]:
        items = await load_conservation(db)
        violations = find_violations(items)
        if not violations:
            logger.info("Conservation holds for %d item(s)", len(items))
        return {
            "ok": not violations,
            "violations": violations,
            "items": [
                {
                    "item_id": i.item_id,
                    "external_total": i.external_total,
                    "balance_total": i.balance_total,
                    "reserved_total": i.reserved_total,
                }
                for i in items
            ],
        }
