"""Integer arithmetic for fixed-point collateral amounts.

All prices, stakes, balances and payouts are non-negative ints in the
smallest collateral unit. No float, no Decimal. Division truncates.
"""

MAX_FEE_RATE = 100
# Largest value a BIGINT column holds
MAX_AMOUNT = 2**63 - 1


def validate_fee_rate(fee_rate: int) -> None:
    """Fee rate is a whole percentage in [0, 100]."""
    if not (0 <= fee_rate <= MAX_FEE_RATE):
        raise ValueError(f"Fee rate must be between 0 and {MAX_FEE_RATE}, got {fee_rate}")


def within_bigint(value: int) -> bool:
    return 0 <= value <= MAX_AMOUNT


def pro_rata_share(stake: int, pool: int, winning_total: int) -> int:
    """floor(stake * pool / winning_total).

    winning_total includes stake, so it is never 0 for a real winning position.
    """
    if winning_total <= 0:
        raise ValueError("winning_total must be positive")
    return (stake * pool) // winning_total


def calc_fee(amount: int, fee_rate: int) -> int:
    """Floor division fee: amount * fee_rate // 100 (dust stays in custody)."""
    validate_fee_rate(fee_rate)
    if amount == 0 or fee_rate == 0:
        return 0
    return (amount * fee_rate) // 100
