# src/pm_market/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import Side
from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def get_market(
        self,
        db: AsyncSession,
        market_id: int,
        for_update: bool = False,
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        cursor_id: int | None,
        limit: int,
    ) -> list[Market]: ...

    async def insert_market(
        self,
        db: AsyncSession,
        market_id: int,
        start_price: int,
        start_block: int,
        end_block: int,
        created_by: str,
    ) -> Market: ...

    async def add_stake(
        self,
        db: AsyncSession,
        market_id: int,
        side: Side,
        amount: int,
    ) -> Market: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: int,
        end_price: int,
        resolved_by: str,
    ) -> Market: ...
