"""Identifiers: time-ordered trade/bid ids and opaque request ids.

Trade and bid ids are ``<prefix><19 digits>``: equal width and increasing
within a process, so ``ORDER BY id DESC`` is newest-first and an id doubles as
a pagination cursor.
"""

import threading
import time
import uuid


class SnowflakeIdGenerator:
    """41 bits of ms since 2025-01-01 | 10 bits machine | 12 bits per-ms sequence."""

    EPOCH_MS = 1_735_689_600_000
    MACHINE_BITS = 10
    SEQUENCE_BITS = 12

    def __init__(self, machine_id: int = 0) -> None:
        limit = 1 << self.MACHINE_BITS
        if not 0 <= machine_id < limit:
            raise ValueError(f"machine_id must be in [0, {limit})")
        self._machine_id = machine_id
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self, prefix: str = "") -> str:
        with self._lock:
            ms, seq = self._tick()
        value = (
            (ms - self.EPOCH_MS) << (self.MACHINE_BITS + self.SEQUENCE_BITS)
            | self._machine_id << self.SEQUENCE_BITS
            | seq
        )
        return f"{prefix}{value:019d}"

    def _tick(self) -> tuple[int, int]:
        # A clock that steps backwards is pinned to the last issued ms
        ms = max(time.time_ns() // 1_000_000, self._last_ms)
        if ms != self._last_ms:
            self._last_ms, self._sequence = ms, 0
            return ms, 0
        self._sequence = (self._sequence + 1) % (1 << self.SEQUENCE_BITS)
        if self._sequence == 0:
            while ms <= self._last_ms:
                ms = time.time_ns() // 1_000_000
            self._last_ms = ms
        return ms, self._sequence


_ids = SnowflakeIdGenerator()


def new_trade_id() -> str:
    return _ids.next_id("trd_")


def new_bid_id() -> str:
    return _ids.next_id("bid_")


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"
