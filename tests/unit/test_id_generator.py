"""Tests for bb_common.id_generator and bb_common.datetime_utils."""

from datetime import UTC, datetime

import pytest

from src.bb_common.datetime_utils import utc_now
from src.bb_common.id_generator import SnowflakeIdGenerator, new_bid_id, new_trade_id


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        assert isinstance(gen.next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_string_order_matches_creation_order(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = gen.next_id("trd_")
        for _ in range(100):
            current = gen.next_id("trd_")
            assert current > prev
            assert len(current) == len(prev)
            prev = current

    def test_rejects_out_of_range_machine_id(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_prefixed_helpers(self) -> None:
        assert new_trade_id().startswith("trd_")
        assert new_bid_id().startswith("bid_")


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo is not None

    def test_is_utc(self) -> None:
        assert utc_now().tzinfo == UTC
