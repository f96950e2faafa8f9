"""Pydantic schemas for pm_admin API."""

from pydantic import BaseModel, Field

from src.pm_admin.domain.models import EngineConfig


class SetReporterRequest(BaseModel):
    reporter_id: str = Field(..., min_length=1, max_length=128)


class SetMinimumStakeRequest(BaseModel):
    # Range is enforced by the service so violations surface as InvalidParameterError
    minimum_stake: int


class SetFeeRateRequest(BaseModel):
    fee_rate: int


class WithdrawFeesRequest(BaseModel):
    amount: int


class ConfigResponse(BaseModel):
    administrator: str
    reporter_id: str
    minimum_stake: int
    fee_rate: int
    next_market_id: int
    version: int
    updated_at: str | None

    @classmethod
    def from_domain(cls, cfg: EngineConfig, administrator: str) -> "ConfigResponse":
        return cls(
            administrator=administrator,
            reporter_id=cfg.reporter_id,
            minimum_stake=cfg.minimum_stake,
            fee_rate=cfg.fee_rate,
            next_market_id=cfg.next_market_id,
            version=cfg.version,
            updated_at=cfg.updated_at.isoformat() if cfg.updated_at else None,
        )


class WithdrawFeesResponse(BaseModel):
    withdrawn: int
    custody_balance: int
    administrator_balance: int


class InvariantReport(BaseModel):
    ok: bool
    violations: list[str]
