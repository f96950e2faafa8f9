"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class MarketPhase(str, Enum):
    """Derived from (resolved, current block) — never stored."""
    PENDING = "PENDING"                          # block < start_block
    OPEN = "OPEN"                                # start_block <= block < end_block
    AWAITING_RESOLUTION = "AWAITING_RESOLUTION"  # block >= end_block, not resolved
    RESOLVED = "RESOLVED"                        # terminal


class LedgerEntryType(str, Enum):
    # Deposit/Withdraw (participant)
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    # Stake (participant + custody paired)
    STAKE_LOCK = "STAKE_LOCK"
    CUSTODY_IN = "CUSTODY_IN"
    # Settlement (custody + winner / administrator paired)
    CUSTODY_OUT = "CUSTODY_OUT"
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
    FEE_REVENUE = "FEE_REVENUE"
    # Fee withdrawal (custody + administrator paired)
    FEE_WITHDRAWAL = "FEE_WITHDRAWAL"
