"""PositionRepository — concrete implementation of PositionRepositoryProtocol.

One-position-per-key is enforced by the (market_id, user_id) primary key:
INSERT ... ON CONFLICT DO NOTHING returns no row for a second stake, so the
first writer wins. Claiming is a guarded UPDATE on claimed = FALSE.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.amounts import within_bigint
from src.pm_common.enums import Side
from src.pm_position.domain.models import Position

_COLUMNS = """
    market_id, user_id, side, stake, claimed, payout, fee,
    claimed_at, created_at, updated_at
"""

_GET_POSITION_SQL = text(f"""
    SELECT {_COLUMNS} FROM positions
    WHERE market_id = :market_id AND user_id = :user_id
""")

_GET_POSITION_FOR_UPDATE_SQL = text(f"""
    SELECT {_COLUMNS} FROM positions
    WHERE market_id = :market_id AND user_id = :user_id
    FOR UPDATE
""")

_INSERT_POSITION_SQL = text(f"""
    INSERT INTO positions (market_id, user_id, side, stake)
    VALUES (:market_id, :user_id, :side, :stake)
    ON CONFLICT (market_id, user_id) DO NOTHING
    RETURNING {_COLUMNS}
""")

_MARK_CLAIMED_SQL = text(f"""
    UPDATE positions
    SET claimed = TRUE,
        payout = :payout,
        fee = :fee,
        claimed_at = NOW(),
        updated_at = NOW()
    WHERE market_id = :market_id AND user_id = :user_id AND claimed = FALSE
    RETURNING {_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS} FROM positions
    WHERE user_id = :user_id
    ORDER BY market_id DESC
""")


def _row_to_position(row: object) -> Position:
    return Position(
        market_id=row.market_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        side=Side(row.side),  # type: ignore[attr-defined]
        stake=row.stake,  # type: ignore[attr-defined]
        claimed=row.claimed,  # type: ignore[attr-defined]
        payout=row.payout,  # type: ignore[attr-defined]
        fee=row.fee,  # type: ignore[attr-defined]
        claimed_at=row.claimed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PositionRepository:
    async def get_position(
        self, db: AsyncSession, market_id: int, user_id: str, for_update: bool = False
    ) -> Position | None:
        if not within_bigint(market_id):
            return None  # no BIGINT key can match
        sql = _GET_POSITION_FOR_UPDATE_SQL if for_update else _GET_POSITION_SQL
        result = await db.execute(sql, {"market_id": market_id, "user_id": user_id})
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def insert_position(
        self, db: AsyncSession, market_id: int, user_id: str, side: Side, stake: int
    ) -> Position | None:
        result = await db.execute(
            _INSERT_POSITION_SQL,
            {"market_id": market_id, "user_id": user_id, "side": side.value, "stake": stake},
        )
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def mark_claimed(
        self, db: AsyncSession, market_id: int, user_id: str, payout: int, fee: int
    ) -> Position | None:
        result = await db.execute(
            _MARK_CLAIMED_SQL,
            {"market_id": market_id, "user_id": user_id, "payout": payout, "fee": fee},
        )
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def list_positions_by_user(
        self, db: AsyncSession, user_id: str
    ) -> list[Position]:
        result = await db.execute(_LIST_BY_USER_SQL, {"user_id": user_id})
        return [_row_to_position(row) for row in result.fetchall()]
