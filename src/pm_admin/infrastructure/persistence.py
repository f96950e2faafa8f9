"""ConfigRepository — engine_config singleton (row id = 1).

Every mutation is a single UPDATE ... RETURNING, which row-locks the
singleton until the caller's transaction ends. Market id allocation
therefore serialises with concurrent creates.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.domain.models import EngineConfig
from src.pm_common.errors import InternalError

_COLUMNS = "reporter_id, minimum_stake, fee_rate, next_market_id, version, updated_at"

_GET_CONFIG_SQL = text(f"SELECT {_COLUMNS} FROM engine_config WHERE id = 1")

_GET_CONFIG_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM engine_config WHERE id = 1 FOR UPDATE"
)

_ALLOCATE_MARKET_ID_SQL = text("""
    UPDATE engine_config
    SET next_market_id = next_market_id + 1,
        updated_at = NOW()
    WHERE id = 1
    RETURNING next_market_id - 1 AS market_id
""")

_SET_REPORTER_SQL = text(f"""
    UPDATE engine_config
    SET reporter_id = :reporter_id, version = version + 1, updated_at = NOW()
    WHERE id = 1
    RETURNING {_COLUMNS}
""")

_SET_MINIMUM_STAKE_SQL = text(f"""
    UPDATE engine_config
    SET minimum_stake = :minimum_stake, version = version + 1, updated_at = NOW()
    WHERE id = 1
    RETURNING {_COLUMNS}
""")

_SET_FEE_RATE_SQL = text(f"""
    UPDATE engine_config
    SET fee_rate = :fee_rate, version = version + 1, updated_at = NOW()
    WHERE id = 1
    RETURNING {_COLUMNS}
""")


def _row_to_config(row: object) -> EngineConfig:
    return EngineConfig(
        reporter_id=row.reporter_id,  # type: ignore[attr-defined]
        minimum_stake=row.minimum_stake,  # type: ignore[attr-defined]
        fee_rate=row.fee_rate,  # type: ignore[attr-defined]
        next_market_id=row.next_market_id,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class ConfigRepository:
    async def get_config(self, db: AsyncSession, for_update: bool = False) -> EngineConfig:
        sql = _GET_CONFIG_FOR_UPDATE_SQL if for_update else _GET_CONFIG_SQL
        row = (await db.execute(sql)).fetchone()
        if row is None:
            raise InternalError("engine_config row missing — run migrations")
        return _row_to_config(row)

    async def allocate_market_id(self, db: AsyncSession) -> int:
        row = (await db.execute(_ALLOCATE_MARKET_ID_SQL)).fetchone()
        if row is None:
            raise InternalError("engine_config row missing — run migrations")
        return int(row.market_id)

    async def set_reporter(self, db: AsyncSession, reporter_id: str) -> EngineConfig:
        return await self._update(db, _SET_REPORTER_SQL, {"reporter_id": reporter_id})

    async def set_minimum_stake(self, db: AsyncSession, minimum_stake: int) -> EngineConfig:
        return await self._update(db, _SET_MINIMUM_STAKE_SQL, {"minimum_stake": minimum_stake})

    async def set_fee_rate(self, db: AsyncSession, fee_rate: int) -> EngineConfig:
        return await self._update(db, _SET_FEE_RATE_SQL, {"fee_rate": fee_rate})

    async def _update(
        self, db: AsyncSession, sql: object, params: dict[str, object]
    ) -> EngineConfig:
        row = (await db.execute(sql, params)).fetchone()  # type: ignore[arg-type]
        if row is None:
            raise InternalError("engine_config row missing — run migrations")
        return _row_to_config(row)
