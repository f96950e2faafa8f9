"""Pydantic schemas for pm_position API."""

from pydantic import BaseModel, Field

from src.pm_position.domain.models import Position


class SubmitStakeRequest(BaseModel):
    # Validated by the service so an unknown side surfaces as InvalidSideError
    side: str = Field(..., description="UP or DOWN")
    amount: int = Field(..., ge=0, description="Stake in collateral units")


class PositionDetail(BaseModel):
    market_id: int
    user_id: str
    side: str
    stake: int
    claimed: bool
    payout: int | None
    fee: int | None
    claimed_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, p: Position) -> "PositionDetail":
        return cls(
            market_id=p.market_id,
            user_id=p.user_id,
            side=p.side.value,
            stake=p.stake,
            claimed=p.claimed,
            payout=p.payout,
            fee=p.fee,
            claimed_at=p.claimed_at.isoformat() if p.claimed_at else None,
            created_at=p.created_at.isoformat() if p.created_at else None,
        )


class PositionListResponse(BaseModel):
    items: list[PositionDetail]
