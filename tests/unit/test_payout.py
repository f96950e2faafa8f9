"""Unit tests for the payout rule and integer amount helpers."""

import pytest

from src.pm_common.amounts import calc_fee, pro_rata_share, validate_fee_rate
from src.pm_common.enums import Side
from src.pm_settlement.domain.payout import compute_payout, winning_side


class TestWinningSide:
    def test_higher_end_price_is_up(self) -> None:
        assert winning_side(100, 150) == Side.UP

    def test_lower_end_price_is_down(self) -> None:
        assert winning_side(100, 50) == Side.DOWN

    def test_tie_resolves_down(self) -> None:
        assert winning_side(100, 100) == Side.DOWN


class TestComputePayout:
    def test_two_up_one_down_with_two_percent_fee(self) -> None:
        # pool 400, winning_total 200: winnings 200, fee 4, payout 196
        b = compute_payout(100, 200, 200, Side.UP, 2)
        assert b.winning_side == Side.UP
        assert b.winnings == 200
        assert b.fee == 4
        assert b.payout == 196

    def test_sole_winner_takes_whole_pool(self) -> None:
        b = compute_payout(50, 0, 50, Side.DOWN, 0)
        assert b.winnings == 50
        assert b.payout == 50

    def test_truncation_leaves_dust(self) -> None:
        # pool 7 over winning_total 3: 1 → floor(7/3)=2, 2 → floor(14/3)=4
        a = compute_payout(1, 3, 4, Side.UP, 0)
        b = compute_payout(2, 3, 4, Side.UP, 0)
        assert (a.winnings, b.winnings) == (2, 4)
        assert 7 - (a.winnings + b.winnings) == 1

    def test_fee_rounds_down(self) -> None:
        b = compute_payout(10, 10, 39, Side.UP, 3)
        assert b.winnings == 49
        assert b.fee == 1  # floor(147 / 100)
        assert b.payout == 48

    def test_full_fee_rate_pays_nothing(self) -> None:
        b = compute_payout(10, 10, 10, Side.UP, 100)
        assert b.fee == b.winnings == 20
        assert b.payout == 0

    def test_stake_outside_winning_total_rejected(self) -> None:
        with pytest.raises(ValueError):
            compute_payout(300, 200, 200, Side.UP, 2)
        with pytest.raises(ValueError):
            compute_payout(0, 200, 200, Side.UP, 2)


class TestAmounts:
    def test_pro_rata_share_floors(self) -> None:
        assert pro_rata_share(1, 10, 3) == 3

    def test_pro_rata_share_requires_positive_total(self) -> None:
        with pytest.raises(ValueError):
            pro_rata_share(1, 10, 0)

    @pytest.mark.parametrize("rate", [-1, 101])
    def test_fee_rate_out_of_range(self, rate: int) -> None:
        with pytest.raises(ValueError):
            validate_fee_rate(rate)

    def test_zero_fee(self) -> None:
        assert calc_fee(1000, 0) == 0
        assert calc_fee(0, 50) == 0
