"""Pydantic schemas for pm_market API.

Cursor format for markets (BIGINT PK, assigned in ascending order):
  {"id": <last market id in page>}, Base64 JSON, pages newest first.

Request bodies only enforce non-negative integers; the domain rules
(start_price > 0, end_block > start_block, end_price > 0) are checked by the
service so they surface as InvalidParameterError.
"""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.pm_common.enums import MarketPhase
from src.pm_market.domain.lifecycle import market_phase
from src.pm_market.domain.models import Market
from src.pm_settlement.domain.payout import winning_side

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    return base64.b64encode(json.dumps({"id": last_market.id}).encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode cursor -> last market id, or None on error."""
    if cursor is None:
        return None
    try:
        return int(json.loads(base64.b64decode(cursor.encode()).decode())["id"])
    except (ValueError, KeyError, TypeError):
        return None


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    start_price: int = Field(..., ge=0, description="Reference price, fixed-point units")
    start_block: int = Field(..., ge=0)
    end_block: int = Field(..., ge=0)


class ResolveMarketRequest(BaseModel):
    end_price: int = Field(..., ge=0, description="Realized price, fixed-point units")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: int
    start_price: int
    start_block: int
    end_block: int
    pool: int
    resolved: bool
    phase: MarketPhase

    @classmethod
    def from_domain(cls, m: Market, current_block: int) -> "MarketListItem":
        return cls(
            id=m.id,
            start_price=m.start_price,
            start_block=m.start_block,
            end_block=m.end_block,
            pool=m.pool,
            resolved=m.resolved,
            phase=market_phase(m, current_block),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool
    current_block: int


class MarketDetail(BaseModel):
    id: int
    start_price: int
    end_price: int
    total_up_stake: int
    total_down_stake: int
    pool: int
    start_block: int
    end_block: int
    resolved: bool
    phase: MarketPhase
    current_block: int
    winning_side: str | None
    created_by: str
    resolved_by: str | None
    resolved_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, m: Market, current_block: int) -> "MarketDetail":
        return cls(
            id=m.id,
            start_price=m.start_price,
            end_price=m.end_price,
            total_up_stake=m.total_up_stake,
            total_down_stake=m.total_down_stake,
            pool=m.pool,
            start_block=m.start_block,
            end_block=m.end_block,
            resolved=m.resolved,
            phase=market_phase(m, current_block),
            current_block=current_block,
            winning_side=winning_side(m.start_price, m.end_price).value if m.resolved else None,
            created_by=m.created_by,
            resolved_by=m.resolved_by,
            resolved_at=_iso(m.resolved_at),
            created_at=_iso(m.created_at),
        )


class ClockResponse(BaseModel):
    current_block: int
    block_time_seconds: int
    genesis_at: str
