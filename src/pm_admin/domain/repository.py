"""Repository Protocol for the engine_config singleton row."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.domain.models import EngineConfig


class ConfigRepositoryProtocol(Protocol):
    async def get_config(
        self, db: AsyncSession, for_update: bool = False
    ) -> EngineConfig: ...

    async def allocate_market_id(self, db: AsyncSession) -> int: ...

    async def set_reporter(self, db: AsyncSession, reporter_id: str) -> EngineConfig: ...

    async def set_minimum_stake(self, db: AsyncSession, minimum_stake: int) -> EngineConfig: ...

    async def set_fee_rate(self, db: AsyncSession, fee_rate: int) -> EngineConfig: ...
