"""PositionApplicationService — Position Book.

submit_stake runs as one transaction:
  1. lock market row (FOR UPDATE)         → MarketNotFoundError
  2. market must be OPEN at current block → MarketClosedError
  3. side must be UP / DOWN               → InvalidSideError
  4. amount >= minimum_stake, pool and
     custody stay within BIGINT           → InvalidStakeError
  5. caller balance >= amount             → InsufficientBalanceError
  6. no existing position for the caller  → DuplicatePositionError
  7. transfer caller → custody, insert position, bump market total

A second stake on the same market is rejected, never merged or overwritten,
so the market totals always equal the sum of recorded positions.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.constants import ENGINE_CUSTODY_ID, SYSTEM_ACCOUNT_IDS
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_admin.domain.repository import ConfigRepositoryProtocol
from src.pm_admin.infrastructure.persistence import ConfigRepository
from src.pm_common.amounts import MAX_AMOUNT
from src.pm_common.block_clock import BlockClock, get_block_clock
from src.pm_common.enums import LedgerEntryType, Side
from src.pm_common.errors import (
    DuplicatePositionError,
    InsufficientBalanceError,
    InvalidStakeError,
    MarketNotFoundError,
    PositionNotFoundError,
    UnauthorizedError,
)
from src.pm_market.domain.lifecycle import ensure_open
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_position.application.schemas import PositionDetail, PositionListResponse
from src.pm_position.domain.repository import PositionRepositoryProtocol
from src.pm_position.domain.rules import check_stake_amount, parse_side
from src.pm_position.infrastructure.persistence import PositionRepository

logger = logging.getLogger(__name__)


class PositionApplicationService:
    def __init__(
        self,
        repo: PositionRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        config_repo: ConfigRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        clock: BlockClock | None = None,
    ) -> None:
        self._repo: PositionRepositoryProtocol = repo or PositionRepository()
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._config_repo: ConfigRepositoryProtocol = config_repo or ConfigRepository()
        self._account_repo: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._clock: BlockClock = clock or get_block_clock()

    async def submit_stake(
        self,
        db: AsyncSession,
        caller: str,
        market_id: int,
        side: str | Side,
        amount: int,
    ) -> PositionDetail:
        if caller in SYSTEM_ACCOUNT_IDS:
            raise UnauthorizedError("stake from a system account")
        current_block = self._clock.current_height()
        try:
            market = await self._market_repo.get_market(db, market_id, for_update=True)
            if market is None:
                raise MarketNotFoundError(market_id)
            ensure_open(market, current_block)
            chosen = parse_side(side)

            config = await self._config_repo.get_config(db)
            check_stake_amount(amount, config.minimum_stake)
            custody = await self._account_repo.get_account(db, ENGINE_CUSTODY_ID)
            held = custody.available_balance if custody else 0
            headroom = MAX_AMOUNT - max(market.pool, held)
            if amount > headroom:
                raise InvalidStakeError(amount, config.minimum_stake, headroom)

            account = await self._account_repo.get_account(db, caller)
            available = account.available_balance if account else 0
            if available < amount:
                raise InsufficientBalanceError(amount, available)

            position = await self._repo.insert_position(db, market_id, caller, chosen, amount)
            if position is None:
                raise DuplicatePositionError(market_id, caller)

            await self._account_repo.transfer(
                db,
                caller,
                ENGINE_CUSTODY_ID,
                amount,
                LedgerEntryType.STAKE_LOCK,
                LedgerEntryType.CUSTODY_IN,
                "MARKET",
                str(market_id),
                f"Stake {chosen.value} on market {market_id}",
            )
            market = await self._market_repo.add_stake(db, market_id, chosen, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Stake accepted: market=%d user=%s side=%s amount=%d pool=%d",
            market_id, caller, chosen.value, amount, market.pool,
        )
        return PositionDetail.from_domain(position)

    async def get_position(
        self, db: AsyncSession, market_id: int, user_id: str
    ) -> PositionDetail:
        position = await self._repo.get_position(db, market_id, user_id)
        if position is None:
            raise PositionNotFoundError(market_id, user_id)
        return PositionDetail.from_domain(position)

    async def list_positions(self, db: AsyncSession, user_id: str) -> PositionListResponse:
        positions = await self._repo.list_positions_by_user(db, user_id)
        return PositionListResponse(items=[PositionDetail.from_domain(p) for p in positions])
