"""Unit tests for PositionApplicationService — stake admission and custody."""

import pytest

from src.pm_account.domain.constants import ENGINE_CUSTODY_ID
from src.pm_common.amounts import MAX_AMOUNT
from src.pm_common.errors import (
    DuplicatePositionError,
    InsufficientBalanceError,
    InvalidSideError,
    InvalidStakeError,
    MarketClosedError,
    MarketNotFoundError,
    PositionNotFoundError,
    UnauthorizedError,
)


class TestSubmitStake:
    async def test_stake_moves_value_into_custody(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.fund("alice", 500)

        position = await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)

        assert position.side == "UP"
        assert position.stake == 100
        assert position.claimed is False
        assert engine.store.balance("alice") == 400
        assert engine.store.balance(ENGINE_CUSTODY_ID) == 100
        assert engine.store.markets[market_id].total_up_stake == 100
        assert engine.store.markets[market_id].total_down_stake == 0

    async def test_side_is_case_insensitive(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.stake("bob", market_id, "down", 50)
        assert engine.store.markets[market_id].total_down_stake == 50

    async def test_ledger_pairs_stake_with_custody(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.stake("alice", market_id, "UP", 100)
        types = [e.entry_type for e in engine.store.ledger if e.reference_type == "MARKET"]
        assert types == ["STAKE_LOCK", "CUSTODY_IN"]

    async def test_unknown_market(self, engine) -> None:
        await engine.fund("alice", 500)
        with pytest.raises(MarketNotFoundError):
            await engine.positions.submit_stake(engine.db, "alice", 99, "UP", 100)

    async def test_before_start_block(self, engine) -> None:
        market_id = await engine.open_market(start_block=10, end_block=20)
        engine.clock.height = 9
        await engine.fund("alice", 500)
        with pytest.raises(MarketClosedError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)

    async def test_at_end_block(self, engine) -> None:
        market_id = await engine.open_market(start_block=10, end_block=20)
        engine.clock.height = 20
        await engine.fund("alice", 500)
        with pytest.raises(MarketClosedError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)

    async def test_closed_checked_before_side(self, engine) -> None:
        market_id = await engine.open_market()
        engine.clock.height = 20
        with pytest.raises(MarketClosedError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "SIDEWAYS", 0)

    async def test_invalid_side(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.fund("alice", 500)
        with pytest.raises(InvalidSideError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "SIDEWAYS", 100)

    async def test_below_minimum_stake(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.fund("alice", 500)
        with pytest.raises(InvalidStakeError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 9)

    async def test_zero_stake(self, engine) -> None:
        market_id = await engine.open_market()
        with pytest.raises(InvalidStakeError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 0)

    async def test_stake_beyond_bigint(self, engine) -> None:
        market_id = await engine.open_market()
        with pytest.raises(InvalidStakeError) as exc_info:
            await engine.positions.submit_stake(
                engine.db, "alice", market_id, "UP", MAX_AMOUNT + 1
            )
        assert "maximum" in exc_info.value.message

    async def test_stake_that_would_overflow_custody(self, engine) -> None:
        market_id = await engine.open_market()
        engine.store.accounts[ENGINE_CUSTODY_ID] = MAX_AMOUNT - 50
        await engine.fund("alice", 100)

        with pytest.raises(InvalidStakeError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)

        assert engine.store.balance("alice") == 100
        assert (market_id, "alice") not in engine.store.positions

    async def test_minimum_read_at_call_time(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.fund("alice", 500)
        await engine.admin.set_minimum_stake(engine.db, "admin-1", 200)
        with pytest.raises(InvalidStakeError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)

    async def test_insufficient_balance_changes_nothing(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.fund("alice", 50)
        with pytest.raises(InsufficientBalanceError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "UP", 100)
        assert engine.store.balance("alice") == 50
        assert engine.store.positions == {}
        assert engine.store.markets[market_id].total_up_stake == 0

    async def test_restake_rejected_and_first_position_kept(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.stake("alice", market_id, "UP", 100)
        await engine.fund("alice", 300)

        with pytest.raises(DuplicatePositionError):
            await engine.positions.submit_stake(engine.db, "alice", market_id, "DOWN", 300)

        position = engine.store.positions[(market_id, "alice")]
        assert (position.side.value, position.stake) == ("UP", 100)
        market = engine.store.markets[market_id]
        assert (market.total_up_stake, market.total_down_stake) == (100, 0)
        assert engine.store.balance("alice") == 300
        assert engine.store.balance(ENGINE_CUSTODY_ID) == 100

    async def test_custody_account_cannot_stake(self, engine) -> None:
        market_id = await engine.open_market()
        with pytest.raises(UnauthorizedError):
            await engine.positions.submit_stake(engine.db, ENGINE_CUSTODY_ID, market_id, "UP", 100)

    async def test_totals_equal_sum_of_positions(self, engine) -> None:
        market_id = await engine.open_market()
        for user, side, amount in [("a", "UP", 10), ("b", "DOWN", 25), ("c", "UP", 40)]:
            await engine.stake(user, market_id, side, amount)
        market = engine.store.markets[market_id]
        stakes = [p.stake for p in engine.store.positions.values()]
        assert market.pool == sum(stakes) == 75
        assert engine.store.balance(ENGINE_CUSTODY_ID) == 75


class TestReads:
    async def test_get_position(self, engine) -> None:
        market_id = await engine.open_market()
        await engine.stake("alice", market_id, "UP", 100)
        position = await engine.positions.get_position(engine.db, market_id, "alice")
        assert position.user_id == "alice"
        assert position.payout is None

    async def test_get_missing_position(self, engine) -> None:
        market_id = await engine.open_market()
        with pytest.raises(PositionNotFoundError):
            await engine.positions.get_position(engine.db, market_id, "nobody")

    async def test_list_positions(self, engine) -> None:
        m0 = await engine.open_market()
        m1 = await engine.open_market()
        await engine.stake("alice", m0, "UP", 10)
        await engine.stake("alice", m1, "DOWN", 20)
        await engine.stake("bob", m1, "UP", 30)

        result = await engine.positions.list_positions(engine.db, "alice")
        assert [(p.market_id, p.side) for p in result.items] == [(m1, "DOWN"), (m0, "UP")]
