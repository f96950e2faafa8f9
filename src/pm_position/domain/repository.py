"""Repository Protocol for the positions table."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import Side
from src.pm_position.domain.models import Position


class PositionRepositoryProtocol(Protocol):
    async def get_position(
        self,
        db: AsyncSession,
        market_id: int,
        user_id: str,
        for_update: bool = False,
    ) -> Position | None: ...

    async def insert_position(
        self,
        db: AsyncSession,
        market_id: int,
        user_id: str,
        side: Side,
        stake: int,
    ) -> Position | None:
        """Returns None when a position for (market_id, user_id) already exists."""
        ...

    async def mark_claimed(
        self,
        db: AsyncSession,
        market_id: int,
        user_id: str,
        payout: int,
        fee: int,
    ) -> Position | None:
        """Returns None when the position was already claimed."""
        ...

    async def list_positions_by_user(
        self, db: AsyncSession, user_id: str
    ) -> list[Position]: ...
