"""Domain models for pm_admin — the engine configuration singleton."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class EngineConfig:
    reporter_id: str
    minimum_stake: int      # collateral units, > 0
    fee_rate: int           # whole percent, 0..100
    next_market_id: int     # monotonic counter
    version: int            # bumped on every parameter change
    updated_at: datetime | None = None
