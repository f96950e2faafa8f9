"""Market lifecycle — phase derivation and transition guards.

    PENDING ──(block ≥ start)──▶ OPEN ──(block ≥ end)──▶ AWAITING_RESOLUTION
                                                          │ resolve_market
                                                          ▼
                                                       RESOLVED (terminal)

Stakes are accepted only in OPEN, resolution only from AWAITING_RESOLUTION,
claims only in RESOLVED.
"""

from src.pm_common.amounts import MAX_AMOUNT
from src.pm_common.enums import MarketPhase
from src.pm_common.errors import (
    AlreadyResolvedError,
    InvalidParameterError,
    MarketClosedError,
    MarketStillOpenError,
)
from src.pm_market.domain.models import Market


def market_phase(market: Market, current_block: int) -> MarketPhase:
    if market.resolved:
        return MarketPhase.RESOLVED
    if current_block >= market.end_block:
        return MarketPhase.AWAITING_RESOLUTION
    if current_block < market.start_block:
        return MarketPhase.PENDING
    return MarketPhase.OPEN


def validate_market_params(start_price: int, start_block: int, end_block: int) -> None:
    if start_price <= 0:
        raise InvalidParameterError(f"start_price must be positive, got {start_price}")
    if start_price > MAX_AMOUNT:
        raise InvalidParameterError(f"start_price exceeds {MAX_AMOUNT}, got {start_price}")
    if start_block < 0:
        raise InvalidParameterError(f"start_block must be non-negative, got {start_block}")
    if end_block <= start_block:
        raise InvalidParameterError(
            f"end_block ({end_block}) must be greater than start_block ({start_block})"
        )
    if end_block > MAX_AMOUNT:
        raise InvalidParameterError(f"end_block exceeds {MAX_AMOUNT}, got {end_block}")


def ensure_open(market: Market, current_block: int) -> None:
    phase = market_phase(market, current_block)
    if phase != MarketPhase.OPEN:
        raise MarketClosedError(market.id, phase.value)


def ensure_resolvable(market: Market, current_block: int, end_price: int) -> None:
    """Guard order: still open → already resolved → price."""
    if current_block < market.end_block:
        raise MarketStillOpenError(market.id, current_block, market.end_block)
    if market.resolved:
        raise AlreadyResolvedError(market.id)
    if end_price <= 0:
        raise InvalidParameterError(f"end_price must be positive, got {end_price}")
    if end_price > MAX_AMOUNT:
        raise InvalidParameterError(f"end_price exceeds {MAX_AMOUNT}, got {end_price}")


def ensure_resolved(market: Market) -> None:
    if not market.resolved:
        raise MarketClosedError(market.id, "not resolved")
