"""MarketApplicationService — Market Registry.

create_market is gated on the administrator principal fixed at deployment;
resolve_market on the reporter principal currently stored in engine_config.
Both gates are plain comparisons against stored identity values.

Mutations commit on success and roll back on any error, so a rejected call
leaves no trace.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_admin.domain.repository import ConfigRepositoryProtocol
from src.pm_admin.infrastructure.persistence import ConfigRepository
from src.pm_common.block_clock import BlockClock, get_block_clock
from src.pm_common.errors import MarketNotFoundError, UnauthorizedError
from src.pm_market.application.schemas import (
    ClockResponse,
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.lifecycle import ensure_resolvable, validate_market_params
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        config_repo: ConfigRepositoryProtocol | None = None,
        clock: BlockClock | None = None,
        admin_id: str | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._config_repo: ConfigRepositoryProtocol = config_repo or ConfigRepository()
        self._clock: BlockClock = clock or get_block_clock()
        self._admin_id = admin_id or settings.ADMIN_PRINCIPAL

    async def create_market(
        self,
        db: AsyncSession,
        caller: str,
        start_price: int,
        start_block: int,
        end_block: int,
    ) -> MarketDetail:
        if caller != self._admin_id:
            raise UnauthorizedError("create markets")
        validate_market_params(start_price, start_block, end_block)

        try:
            market_id = await self._config_repo.allocate_market_id(db)
            market = await self._repo.insert_market(
                db, market_id, start_price, start_block, end_block, caller
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Market created: id=%d start_price=%d blocks=[%d, %d)",
            market.id, start_price, start_block, end_block,
        )
        return MarketDetail.from_domain(market, self._clock.current_height())

    async def resolve_market(
        self,
        db: AsyncSession,
        caller: str,
        market_id: int,
        end_price: int,
    ) -> MarketDetail:
        current_block = self._clock.current_height()
        try:
            config = await self._config_repo.get_config(db)
            if caller != config.reporter_id:
                raise UnauthorizedError("resolve markets")

            market = await self._repo.get_market(db, market_id, for_update=True)
            if market is None:
                raise MarketNotFoundError(market_id)
            ensure_resolvable(market, current_block, end_price)

            market = await self._repo.mark_resolved(db, market_id, end_price, caller)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Market resolved: id=%d start_price=%d end_price=%d pool=%d block=%d",
            market.id, market.start_price, end_price, market.pool, current_block,
        )
        return MarketDetail.from_domain(market, current_block)

    async def get_market(self, db: AsyncSession, market_id: int) -> MarketDetail:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market, self._clock.current_height())

    async def list_markets(
        self, db: AsyncSession, cursor: str | None, limit: int
    ) -> MarketListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(db, cursor_id, limit + 1)
        has_more = len(markets) > limit
        page = markets[:limit]

        current_block = self._clock.current_height()
        items = [MarketListItem.from_domain(m, current_block) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(
            items=items,
            next_cursor=next_cursor,
            has_more=has_more,
            current_block=current_block,
        )

    def current_clock(self) -> ClockResponse:
        return ClockResponse(
            current_block=self._clock.current_height(),
            block_time_seconds=settings.BLOCK_TIME_SECONDS,
            genesis_at=settings.GENESIS_AT.isoformat(),
        )
