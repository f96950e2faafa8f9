"""Payout rule — proportional share of the pool, net of the platform fee.

    winner   = UP if end_price > start_price else DOWN   (a tie goes to DOWN)
    winnings = floor(stake * pool / winning_total)
    fee      = floor(winnings * fee_rate / 100)
    payout   = winnings - fee

Truncation dust is never distributed and stays in custody.
"""

from dataclasses import dataclass

from src.pm_common.amounts import calc_fee, pro_rata_share
from src.pm_common.enums import Side


@dataclass(frozen=True)
class PayoutBreakdown:
    winning_side: Side
    winnings: int
    fee: int
    payout: int


def winning_side(start_price: int, end_price: int) -> Side:
    """Strictly greater wins UP; equal or lower resolves DOWN."""
    return Side.UP if end_price > start_price else Side.DOWN


def compute_payout(
    stake: int,
    total_up_stake: int,
    total_down_stake: int,
    winner: Side,
    fee_rate: int,
) -> PayoutBreakdown:
    pool = total_up_stake + total_down_stake
    winning_total = total_up_stake if winner == Side.UP else total_down_stake
    if stake <= 0 or stake > winning_total:
        raise ValueError(
            f"stake {stake} is not part of the winning total {winning_total}"
        )
    winnings = pro_rata_share(stake, pool, winning_total)
    fee = calc_fee(winnings, fee_rate)
    return PayoutBreakdown(
        winning_side=winner,
        winnings=winnings,
        fee=fee,
        payout=winnings - fee,
    )
