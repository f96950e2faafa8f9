"""Domain models for pm_position — one stake per (market, participant)."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import Side


@dataclass
class Position:
    market_id: int
    user_id: str
    side: Side
    stake: int
    claimed: bool = False
    payout: int | None = None   # net amount paid on claim
    fee: int | None = None      # fee charged on claim
    claimed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
