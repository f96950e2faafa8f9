"""Domain models for pm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import Side


@dataclass
class Market:
    id: int
    start_price: int
    end_price: int             # 0 until resolved
    total_up_stake: int
    total_down_stake: int
    start_block: int
    end_block: int             # > start_block
    resolved: bool
    created_by: str
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def pool(self) -> int:
        return self.total_up_stake + self.total_down_stake

    def side_total(self, side: Side) -> int:
        return self.total_up_stake if side == Side.UP else self.total_down_stake
