"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Mutations RETURN the full row so callers never re-read.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.amounts import within_bigint
from src.pm_common.enums import Side
from src.pm_common.errors import AlreadyResolvedError, MarketNotFoundError
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, start_price, end_price,
    total_up_stake, total_down_stake,
    start_block, end_block, resolved,
    created_by, resolved_by, resolved_at,
    created_at, updated_at
"""

_GET_MARKET_SQL = text(f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id")

_GET_MARKET_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE"
)

_LIST_MARKETS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM markets
    WHERE CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT)
    ORDER BY id DESC
    LIMIT :limit
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets (id, start_price, start_block, end_block, created_by)
    VALUES (:id, :start_price, :start_block, :end_block, :created_by)
    RETURNING {_COLUMNS}
""")

_ADD_UP_STAKE_SQL = text(f"""
    UPDATE markets
    SET total_up_stake = total_up_stake + :amount, updated_at = NOW()
    WHERE id = :market_id AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

_ADD_DOWN_STAKE_SQL = text(f"""
    UPDATE markets
    SET total_down_stake = total_down_stake + :amount, updated_at = NOW()
    WHERE id = :market_id AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

_RESOLVE_MARKET_SQL = text(f"""
    UPDATE markets
    SET end_price = :end_price,
        resolved = TRUE,
        resolved_by = :resolved_by,
        resolved_at = NOW(),
        updated_at = NOW()
    WHERE id = :market_id AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        start_price=row.start_price,  # type: ignore[attr-defined]
        end_price=row.end_price,  # type: ignore[attr-defined]
        total_up_stake=row.total_up_stake,  # type: ignore[attr-defined]
        total_down_stake=row.total_down_stake,  # type: ignore[attr-defined]
        start_block=row.start_block,  # type: ignore[attr-defined]
        end_block=row.end_block,  # type: ignore[attr-defined]
        resolved=row.resolved,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        resolved_by=row.resolved_by,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MarketRepository:
    async def get_market(
        self, db: AsyncSession, market_id: int, for_update: bool = False
    ) -> Market | None:
        if not within_bigint(market_id):
            return None  # no BIGINT key can match
        sql = _GET_MARKET_FOR_UPDATE_SQL if for_update else _GET_MARKET_SQL
        result = await db.execute(sql, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self, db: AsyncSession, cursor_id: int | None, limit: int
    ) -> list[Market]:
        result = await db.execute(
            _LIST_MARKETS_SQL, {"cursor_id": cursor_id, "limit": limit}
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def insert_market(
        self,
        db: AsyncSession,
        market_id: int,
        start_price: int,
        start_block: int,
        end_block: int,
        created_by: str,
    ) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market_id,
                "start_price": start_price,
                "start_block": start_block,
                "end_block": end_block,
                "created_by": created_by,
            },
        )
        return _row_to_market(result.fetchone())

    async def add_stake(
        self, db: AsyncSession, market_id: int, side: Side, amount: int
    ) -> Market:
        sql = _ADD_UP_STAKE_SQL if side == Side.UP else _ADD_DOWN_STAKE_SQL
        result = await db.execute(sql, {"market_id": market_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise MarketNotFoundError(market_id)
        return _row_to_market(row)

    async def mark_resolved(
        self, db: AsyncSession, market_id: int, end_price: int, resolved_by: str
    ) -> Market:
        result = await db.execute(
            _RESOLVE_MARKET_SQL,
            {"market_id": market_id, "end_price": end_price, "resolved_by": resolved_by},
        )
        row = result.fetchone()
        if row is None:
            # Lost a race against another resolution (or the row vanished)
            raise AlreadyResolvedError(market_id)
        return _row_to_market(row)
