"""Change notifications published after every successful mutation.

Subscribers (dashboards) refresh the views keyed by ``keys``. Publishing is
fire-and-forget: it happens after the transaction commits, and a Redis outage
only costs a stale view, never a failed trade.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.bb_common.datetime_utils import utc_now
from src.bb_common.enums import ChangeKind

logger = logging.getLogger(__name__)

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.CHANGE_PUBLISH_TIMEOUT_SECONDS,
            socket_timeout=settings.CHANGE_PUBLISH_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    action: str
    keys: dict[str, str] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {
                "kind": self.kind.value,
                "action": self.action,
                "keys": self.keys,
                "at": utc_now().isoformat(),
            }
        )


def inventory_changed(user_id: str, item_id: str) -> ChangeEvent:
    return ChangeEvent(
        ChangeKind.INVENTORY, "INVENTORY_ADJUSTED", {"user_id": user_id, "item_id": item_id}
    )


def trade_changed(trade_id: str, action: str) -> ChangeEvent:
    return ChangeEvent(ChangeKind.TRADE, action, {"trade_id": trade_id})


def bid_changed(trade_id: str, bid_id: str, action: str) -> ChangeEvent:
    return ChangeEvent(ChangeKind.BID, action, {"trade_id": trade_id, "bid_id": bid_id})


class ChangePublisherProtocol(Protocol):
    async def publish(self, events: Sequence[ChangeEvent]) -> None: ...


class RedisChangePublisher:
    def __init__(
        self,
        channel: str | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        timeout: float | None = None,
    ) -> None:
        self._channel = channel or settings.CHANGE_CHANNEL
        self._redis_factory = redis_factory
        self._timeout = settings.CHANGE_PUBLISH_TIMEOUT_SECONDS if timeout is None else timeout

    async def publish(self, events: Sequence[ChangeEvent]) -> None:
        if not events:
            return
        try:
            await asyncio.wait_for(self._send(events), self._timeout)
        except (RedisError, OSError) as exc:
            # TimeoutError is an OSError
            logger.warning(
                "Dropped %d change notification(s) on %s: %r",
                len(events),
                self._channel,
                exc,
            )

    async def _send(self, events: Sequence[ChangeEvent]) -> None:
        redis = await self._redis_factory()
        for event in events:
            await redis.publish(self._channel, event.to_json())
