"""In-memory repositories and service fixtures for unit tests.

The fakes implement the repository Protocols over a single Store. FakeSession
snapshots the Store on commit and restores it on rollback, so a service that
raises after a partial write leaves the Store exactly as it was.
"""

import copy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from src.pm_account.application.service import AccountApplicationService
from src.pm_account.domain.constants import ENGINE_CUSTODY_ID
from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_admin.application.service import AdminService
from src.pm_admin.domain.models import EngineConfig
from src.pm_common.block_clock import FixedBlockHeight
from src.pm_common.enums import LedgerEntryType, Side
from src.pm_common.errors import (
    AlreadyResolvedError,
    InsufficientBalanceError,
    MarketNotFoundError,
)
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.models import Market
from src.pm_position.application.service import PositionApplicationService
from src.pm_position.domain.models import Position
from src.pm_settlement.application.service import SettlementApplicationService
from src.pm_settlement.domain import invariants

ADMIN = "admin-1"


@dataclass
class Store:
    accounts: dict[str, int] = field(default_factory=lambda: {ENGINE_CUSTODY_ID: 0})
    ledger: list[LedgerEntry] = field(default_factory=list)
    markets: dict[int, Market] = field(default_factory=dict)
    positions: dict[tuple[int, str], Position] = field(default_factory=dict)
    config: EngineConfig = field(
        default_factory=lambda: EngineConfig(
            reporter_id=ADMIN, minimum_stake=10, fee_rate=2, next_market_id=0, version=0
        )
    )

    def snapshot(self) -> dict:
        return copy.deepcopy(self.__dict__)

    def restore(self, snap: dict) -> None:
        self.__dict__.update(copy.deepcopy(snap))

    def balance(self, user_id: str) -> int:
        return self.accounts.get(user_id, 0)

    def net_deposits(self) -> int:
        return sum(
            e.amount for e in self.ledger
            if e.entry_type in (LedgerEntryType.DEPOSIT, LedgerEntryType.WITHDRAW)
        )


class _Result:
    def __init__(self, rows: list | None = None, scalar: int = 0) -> None:
        self._rows = rows or []
        self._scalar = scalar

    def fetchall(self) -> list:
        return self._rows

    def scalar_one(self) -> int:
        return self._scalar


class FakeSession:
    def __init__(self, store: Store) -> None:
        self._store = store
        self._committed = store.snapshot()
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self._committed = self._store.snapshot()
        self.commits += 1

    async def rollback(self) -> None:
        self._store.restore(self._committed)
        self.rollbacks += 1

    async def execute(self, statement, params=None) -> _Result:  # type: ignore[no-untyped-def]
        """Answer the conservation queries from the Store."""
        store = self._store
        if statement is invariants._MARKET_POOL_MISMATCH_SQL:
            rows = []
            for market_id, m in sorted(store.markets.items()):
                sums = {Side.UP: 0, Side.DOWN: 0}
                for (mid, _), p in store.positions.items():
                    if mid == market_id:
                        sums[p.side] += p.stake
                if (m.total_up_stake, m.total_down_stake) != (sums[Side.UP], sums[Side.DOWN]):
                    rows.append(SimpleNamespace(
                        id=market_id,
                        total_up_stake=m.total_up_stake,
                        total_down_stake=m.total_down_stake,
                        up_sum=sums[Side.UP],
                        down_sum=sums[Side.DOWN],
                    ))
            return _Result(rows=rows)
        scalars = {
            id(invariants._CUSTODY_BALANCE_SQL): lambda: store.balance(ENGINE_CUSTODY_ID),
            id(invariants._TOTAL_POOL_SQL): lambda: sum(m.pool for m in store.markets.values()),
            id(invariants._TOTAL_CLAIMED_SQL): lambda: sum(
                p.payout + p.fee for p in store.positions.values() if p.claimed
            ),
            id(invariants._TOTAL_FEE_WITHDRAWN_SQL): lambda: sum(
                e.amount for e in store.ledger
                if e.entry_type == LedgerEntryType.FEE_WITHDRAWAL
            ),
            id(invariants._TOTAL_BALANCE_SQL): lambda: sum(store.accounts.values()),
            id(invariants._NET_DEPOSIT_SQL): store.net_deposits,
        }
        if id(statement) not in scalars:
            raise AssertionError(f"unexpected statement: {statement}")
        return _Result(scalar=scalars[id(statement)]())


class FakeAccountRepository:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def get_account(self, db, user_id):  # type: ignore[no-untyped-def]
        if user_id not in self._store.accounts:
            return None
        return Account(user_id=user_id, available_balance=self._store.accounts[user_id], version=0)

    async def deposit(self, db, user_id, amount):  # type: ignore[no-untyped-def]
        account = self._credit(user_id, amount)
        entry = self._write_ledger(account, LedgerEntryType.DEPOSIT, amount, "DEPOSIT", None, "Deposit")
        return account, entry

    async def withdraw(self, db, user_id, amount):  # type: ignore[no-untyped-def]
        account = self._debit(user_id, amount)
        entry = self._write_ledger(account, LedgerEntryType.WITHDRAW, -amount, "WITHDRAW", None, "Withdrawal")
        return account, entry

    async def transfer(  # type: ignore[no-untyped-def]
        self, db, from_user_id, to_user_id, amount, debit_type, credit_type,
        ref_type, ref_id, description,
    ):
        if amount <= 0:
            raise ValueError(f"transfer amount must be positive, got {amount}")
        source = self._debit(from_user_id, amount)
        self._write_ledger(source, debit_type, -amount, ref_type, ref_id, description)
        target = self._credit(to_user_id, amount)
        self._write_ledger(target, credit_type, amount, ref_type, ref_id, description)
        return source, target

    async def list_ledger_entries(self, db, user_id, cursor_id, limit, entry_type):  # type: ignore[no-untyped-def]
        entries = [
            e for e in reversed(self._store.ledger)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return entries[:limit]

    def _credit(self, user_id: str, amount: int) -> Account:
        self._store.accounts[user_id] = self._store.accounts.get(user_id, 0) + amount
        return Account(user_id=user_id, available_balance=self._store.accounts[user_id], version=0)

    def _debit(self, user_id: str, amount: int) -> Account:
        available = self._store.accounts.get(user_id, 0)
        if available < amount:
            raise InsufficientBalanceError(amount, available)
        self._store.accounts[user_id] = available - amount
        return Account(user_id=user_id, available_balance=available - amount, version=0)

    def _write_ledger(self, account, entry_type, amount, ref_type, ref_id, description) -> LedgerEntry:  # type: ignore[no-untyped-def]
        entry = LedgerEntry(
            id=len(self._store.ledger) + 1,
            user_id=account.user_id,
            entry_type=LedgerEntryType(entry_type).value,
            amount=amount,
            balance_after=account.available_balance,
            reference_type=ref_type,
            reference_id=ref_id,
            description=description,
            created_at=datetime.now(UTC),
        )
        self._store.ledger.append(entry)
        return entry


class FakeConfigRepository:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def get_config(self, db, for_update=False):  # type: ignore[no-untyped-def]
        return replace(self._store.config)

    async def allocate_market_id(self, db):  # type: ignore[no-untyped-def]
        market_id = self._store.config.next_market_id
        self._store.config.next_market_id += 1
        return market_id

    async def set_reporter(self, db, reporter_id):  # type: ignore[no-untyped-def]
        return self._update(reporter_id=reporter_id)

    async def set_minimum_stake(self, db, minimum_stake):  # type: ignore[no-untyped-def]
        return self._update(minimum_stake=minimum_stake)

    async def set_fee_rate(self, db, fee_rate):  # type: ignore[no-untyped-def]
        return self._update(fee_rate=fee_rate)

    def _update(self, **changes) -> EngineConfig:  # type: ignore[no-untyped-def]
        cfg = self._store.config
        self._store.config = replace(cfg, version=cfg.version + 1, **changes)
        return replace(self._store.config)


class FakeMarketRepository:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def get_market(self, db, market_id, for_update=False):  # type: ignore[no-untyped-def]
        market = self._store.markets.get(market_id)
        return replace(market) if market else None

    async def list_markets(self, db, cursor_id, limit):  # type: ignore[no-untyped-def]
        ids = sorted(
            (i for i in self._store.markets if cursor_id is None or i < cursor_id),
            reverse=True,
        )
        return [replace(self._store.markets[i]) for i in ids[:limit]]

    async def insert_market(self, db, market_id, start_price, start_block, end_block, created_by):  # type: ignore[no-untyped-def]
        market = Market(
            id=market_id,
            start_price=start_price,
            end_price=0,
            total_up_stake=0,
            total_down_stake=0,
            start_block=start_block,
            end_block=end_block,
            resolved=False,
            created_by=created_by,
            created_at=datetime.now(UTC),
        )
        self._store.markets[market_id] = market
        return replace(market)

    async def add_stake(self, db, market_id, side, amount):  # type: ignore[no-untyped-def]
        market = self._store.markets.get(market_id)
        if market is None or market.resolved:
            raise MarketNotFoundError(market_id)
        if side == Side.UP:
            market.total_up_stake += amount
        else:
            market.total_down_stake += amount
        return replace(market)

    async def mark_resolved(self, db, market_id, end_price, resolved_by):  # type: ignore[no-untyped-def]
        market = self._store.markets[market_id]
        if market.resolved:
            raise AlreadyResolvedError(market_id)
        market.end_price = end_price
        market.resolved = True
        market.resolved_by = resolved_by
        market.resolved_at = datetime.now(UTC)
        return replace(market)


class FakePositionRepository:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def get_position(self, db, market_id, user_id, for_update=False):  # type: ignore[no-untyped-def]
        position = self._store.positions.get((market_id, user_id))
        return replace(position) if position else None

    async def insert_position(self, db, market_id, user_id, side, stake):  # type: ignore[no-untyped-def]
        key = (market_id, user_id)
        if key in self._store.positions:
            return None
        position = Position(
            market_id=market_id, user_id=user_id, side=side, stake=stake,
            created_at=datetime.now(UTC),
        )
        self._store.positions[key] = position
        return replace(position)

    async def mark_claimed(self, db, market_id, user_id, payout, fee):  # type: ignore[no-untyped-def]
        position = self._store.positions[(market_id, user_id)]
        if position.claimed:
            return None
        position.claimed = True
        position.payout = payout
        position.fee = fee
        position.claimed_at = datetime.now(UTC)
        return replace(position)

    async def list_positions_by_user(self, db, user_id):  # type: ignore[no-untyped-def]
        return [
            replace(p) for (_, uid), p in sorted(self._store.positions.items(), reverse=True)
            if uid == user_id
        ]


@dataclass
class Engine:
    """Every service wired to one Store and one pinned clock."""

    store: Store
    db: FakeSession
    clock: FixedBlockHeight
    accounts: AccountApplicationService
    markets: MarketApplicationService
    positions: PositionApplicationService
    settlement: SettlementApplicationService
    admin: AdminService

    async def fund(self, user_id: str, amount: int) -> None:
        await self.accounts.deposit(self.db, user_id, amount)

    async def open_market(self, start_price: int = 100, start_block: int = 10, end_block: int = 20) -> int:
        market = await self.markets.create_market(self.db, ADMIN, start_price, start_block, end_block)
        self.clock.height = start_block
        return market.id

    async def stake(self, user_id: str, market_id: int, side: str, amount: int) -> None:
        await self.fund(user_id, amount)
        await self.positions.submit_stake(self.db, user_id, market_id, side, amount)

    async def close_and_resolve(self, market_id: int, end_price: int) -> None:
        market = self.store.markets[market_id]
        self.clock.height = market.end_block
        await self.markets.resolve_market(self.db, self.store.config.reporter_id, market_id, end_price)


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def clock() -> FixedBlockHeight:
    return FixedBlockHeight(0)


@pytest.fixture
def engine(store: Store, clock: FixedBlockHeight) -> Engine:
    account_repo = FakeAccountRepository(store)
    config_repo = FakeConfigRepository(store)
    market_repo = FakeMarketRepository(store)
    position_repo = FakePositionRepository(store)
    return Engine(
        store=store,
        db=FakeSession(store),
        clock=clock,
        accounts=AccountApplicationService(repo=account_repo),
        markets=MarketApplicationService(
            repo=market_repo, config_repo=config_repo, clock=clock, admin_id=ADMIN
        ),
        positions=PositionApplicationService(
            repo=position_repo,
            market_repo=market_repo,
            config_repo=config_repo,
            account_repo=account_repo,
            clock=clock,
        ),
        settlement=SettlementApplicationService(
            market_repo=market_repo,
            position_repo=position_repo,
            config_repo=config_repo,
            account_repo=account_repo,
            admin_id=ADMIN,
        ),
        admin=AdminService(config_repo=config_repo, account_repo=account_repo, admin_id=ADMIN),
    )
