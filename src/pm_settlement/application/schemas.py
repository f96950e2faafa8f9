"""Pydantic schemas for pm_settlement API."""

from pydantic import BaseModel

from src.pm_settlement.domain.payout import PayoutBreakdown


class ClaimPreviewResponse(BaseModel):
    market_id: int
    user_id: str
    side: str
    stake: int
    winning_side: str
    winnings: int
    fee: int
    payout: int

    @classmethod
    def from_breakdown(
        cls, market_id: int, user_id: str, side: str, stake: int, b: PayoutBreakdown
    ) -> "ClaimPreviewResponse":
        return cls(
            market_id=market_id,
            user_id=user_id,
            side=side,
            stake=stake,
            winning_side=b.winning_side.value,
            winnings=b.winnings,
            fee=b.fee,
            payout=b.payout,
        )


class ClaimResponse(ClaimPreviewResponse):
    claimed_at: str | None = None
