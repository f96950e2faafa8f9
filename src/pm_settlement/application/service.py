"""SettlementApplicationService — claims against resolved markets.

claim order of checks (all before any mutation):
  market exists → position exists → market RESOLVED → not yet claimed
  → caller's side won.

A losing claim raises NotAWinnerError and leaves the position untouched.
A winning claim moves payout (custody → caller) and fee (custody →
administrator) and flips claimed, in one transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.constants import ENGINE_CUSTODY_ID
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_admin.domain.repository import ConfigRepositoryProtocol
from src.pm_admin.infrastructure.persistence import ConfigRepository
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import (
    AlreadyClaimedError,
    MarketNotFoundError,
    NotAWinnerError,
    PositionNotFoundError,
)
from src.pm_market.domain.lifecycle import ensure_resolved
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_position.domain.models import Position
from src.pm_position.domain.repository import PositionRepositoryProtocol
from src.pm_position.infrastructure.persistence import PositionRepository
from src.pm_settlement.application.schemas import ClaimPreviewResponse, ClaimResponse
from src.pm_settlement.domain.payout import PayoutBreakdown, compute_payout, winning_side

logger = logging.getLogger(__name__)


class SettlementApplicationService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        position_repo: PositionRepositoryProtocol | None = None,
        config_repo: ConfigRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        admin_id: str | None = None,
    ) -> None:
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._position_repo: PositionRepositoryProtocol = position_repo or PositionRepository()
        self._config_repo: ConfigRepositoryProtocol = config_repo or ConfigRepository()
        self._account_repo: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._admin_id = admin_id or settings.ADMIN_PRINCIPAL

    async def _evaluate(
        self, db: AsyncSession, caller: str, market_id: int, lock: bool
    ) -> tuple[Market, Position, PayoutBreakdown]:
        market = await self._market_repo.get_market(db, market_id, for_update=lock)
        if market is None:
            raise MarketNotFoundError(market_id)
        position = await self._position_repo.get_position(
            db, market_id, caller, for_update=lock
        )
        if position is None:
            raise PositionNotFoundError(market_id, caller)
        ensure_resolved(market)
        if position.claimed:
            raise AlreadyClaimedError(market_id, caller)

        winner = winning_side(market.start_price, market.end_price)
        if position.side != winner:
            raise NotAWinnerError(market_id, winner.value)

        config = await self._config_repo.get_config(db)
        breakdown = compute_payout(
            position.stake,
            market.total_up_stake,
            market.total_down_stake,
            winner,
            config.fee_rate,
        )
        return market, position, breakdown

    async def preview_claim(
        self, db: AsyncSession, caller: str, market_id: int
    ) -> ClaimPreviewResponse:
        _, position, breakdown = await self._evaluate(db, caller, market_id, lock=False)
        return ClaimPreviewResponse.from_breakdown(
            market_id, caller, position.side.value, position.stake, breakdown
        )

    async def claim(self, db: AsyncSession, caller: str, market_id: int) -> ClaimResponse:
        try:
            _, position, breakdown = await self._evaluate(db, caller, market_id, lock=True)
            ref_id = str(market_id)

            if breakdown.payout > 0:
                await self._account_repo.transfer(
                    db,
                    ENGINE_CUSTODY_ID,
                    caller,
                    breakdown.payout,
                    LedgerEntryType.CUSTODY_OUT,
                    LedgerEntryType.SETTLEMENT_PAYOUT,
                    "MARKET",
                    ref_id,
                    f"Payout for market {market_id}",
                )
            if breakdown.fee > 0:
                await self._account_repo.transfer(
                    db,
                    ENGINE_CUSTODY_ID,
                    self._admin_id,
                    breakdown.fee,
                    LedgerEntryType.CUSTODY_OUT,
                    LedgerEntryType.FEE_REVENUE,
                    "MARKET",
                    ref_id,
                    f"Fee on claim by {caller} for market {market_id}",
                )

            claimed = await self._position_repo.mark_claimed(
                db, market_id, caller, breakdown.payout, breakdown.fee
            )
            if claimed is None:
                raise AlreadyClaimedError(market_id, caller)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Claim paid: market=%d user=%s winnings=%d fee=%d payout=%d",
            market_id, caller, breakdown.winnings, breakdown.fee, breakdown.payout,
        )
        preview = ClaimPreviewResponse.from_breakdown(
            market_id, caller, position.side.value, position.stake, breakdown
        )
        return ClaimResponse(
            **preview.model_dump(),
            claimed_at=claimed.claimed_at.isoformat() if claimed.claimed_at else None,
        )
