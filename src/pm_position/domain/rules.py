"""Stake admission rules, applied in order after the market is known OPEN."""

from src.pm_common.amounts import MAX_AMOUNT
from src.pm_common.enums import Side
from src.pm_common.errors import InvalidSideError, InvalidStakeError


def parse_side(raw: str | Side) -> Side:
    if isinstance(raw, Side):
        return raw
    try:
        return Side(str(raw).strip().upper())
    except ValueError:
        raise InvalidSideError(str(raw)) from None


def check_stake_amount(amount: int, minimum_stake: int) -> None:
    # minimum_stake is always > 0, so this also rejects zero and negative stakes
    if amount <= 0 or amount < minimum_stake:
        raise InvalidStakeError(amount, minimum_stake)
    if amount > MAX_AMOUNT:
        raise InvalidStakeError(amount, minimum_stake, MAX_AMOUNT)
