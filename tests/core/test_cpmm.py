# [TESTER] v1

from __future__ import annotations

import math

import pytest

from arbordex.core.cpmm import (
    FEE_RATE,
    MIN_GENESIS_SHARES,
    compute_fee,
    compute_liquidity_shares,
    compute_minimum_output,
    compute_output_amount,
    compute_price_impact,
    compute_spot_price,
    compute_withdrawal_amounts,
    is_slippage_acceptable,
)
from arbordex.core.errors import AmmDomainError, AmmMathError


def test_seeded_pool_swap_of_ten_matches_hand_computation() -> None:
    fee, after = compute_fee(10.0, FEE_RATE)
    assert fee == pytest.approx(0.03)
    assert after == pytest.approx(9.97)

    out = compute_output_amount(after, 1_000_000.0, 1_000_000.0)
    assert out == pytest.approx(9.97 * 1_000_000 / (1_000_000 + 9.97))
    assert round(out, 4) == 9.9699

    spot = compute_spot_price(1_000_000.0, 1_000_000.0)
    assert spot == 1.0

    impact = compute_price_impact(out, after, spot)
    assert 0.0 <= impact < 0.001


def test_output_is_strictly_less_than_output_reserve() -> None:
    out = compute_output_amount(1e12, 1.0, 500.0)
    assert 0 < out < 500.0


@pytest.mark.parametrize(
    "args",
    [
        (0.0, 100.0, 100.0),
        (-1.0, 100.0, 100.0),
        (1.0, 0.0, 100.0),
        (1.0, 100.0, -5.0),
        (math.nan, 100.0, 100.0),
        (1.0, math.inf, 100.0),
    ],
)
def test_output_amount_rejects_non_positive_or_non_finite(args: tuple) -> None:
    with pytest.raises(AmmMathError):
        compute_output_amount(*args)


def test_output_amount_rejects_bool_and_strings() -> None:
    with pytest.raises(AmmMathError):
        compute_output_amount(True, 100.0, 100.0)  # type: ignore[arg-type]
    with pytest.raises(AmmMathError):
        compute_output_amount("5", 100.0, 100.0)  # type: ignore[arg-type]


def test_fee_split_sums_back_to_input() -> None:
    split = compute_fee(1234.5, 0.003)
    assert split.amount_after_fee == 1234.5 - split.fee
    assert split.fee == pytest.approx(3.7035)


def test_fee_zero_rate_is_free() -> None:
    assert compute_fee(50.0, 0.0) == (0.0, 50.0)


def test_fee_rejects_non_finite() -> None:
    with pytest.raises(AmmMathError):
        compute_fee(math.inf)
    with pytest.raises(AmmMathError):
        compute_fee(1.0, math.nan)


def test_spot_price_zero_input_reserve_is_domain_error() -> None:
    with pytest.raises(AmmDomainError):
        compute_spot_price(100.0, 0.0)


def test_spot_price_negative_reserve_rejected() -> None:
    with pytest.raises(AmmMathError):
        compute_spot_price(-1.0, 10.0)


def test_spot_price_is_ratio() -> None:
    assert compute_spot_price(3_000_000.0, 1_000.0) == 3000.0


def test_price_impact_never_negative() -> None:
    # Execution better than spot (only possible from mis-ordered inputs) clamps to zero.
    assert compute_price_impact(20.0, 10.0, 1.0) == 0.0


def test_price_impact_grows_with_trade_size() -> None:
    small = compute_price_impact(compute_output_amount(10.0, 1000.0, 1000.0), 10.0, 1.0)
    large = compute_price_impact(compute_output_amount(100.0, 1000.0, 1000.0), 100.0, 1.0)
    assert 0 < small < large < 1


def test_price_impact_rejects_zero_input_and_spot() -> None:
    with pytest.raises(AmmMathError):
        compute_price_impact(1.0, 0.0, 1.0)
    with pytest.raises(AmmMathError):
        compute_price_impact(1.0, 1.0, 0.0)
    with pytest.raises(AmmMathError):
        compute_price_impact(-1.0, 1.0, 1.0)


def test_minimum_output_and_acceptance() -> None:
    minimum = compute_minimum_output(100.0, 0.005)
    assert minimum == pytest.approx(99.5)
    assert is_slippage_acceptable(99.5, minimum)
    assert is_slippage_acceptable(100.0, minimum)
    assert not is_slippage_acceptable(99.4, minimum)


class TestLiquidityShares:
    def test_genesis_uses_geometric_mean(self) -> None:
        assert compute_liquidity_shares(4_000.0, 9_000.0, 0.0, 0.0, 0.0) == pytest.approx(6_000.0)

    def test_genesis_small_deposit_gets_floor(self) -> None:
        assert compute_liquidity_shares(10.0, 10.0, 0.0, 0.0, 0.0) == MIN_GENESIS_SHARES

    def test_proportional_deposit(self) -> None:
        shares = compute_liquidity_shares(100.0, 100.0, 1_000_000.0, 1_000_000.0, 1_000_000.0)
        assert shares == pytest.approx(100.0)

    def test_lopsided_deposit_credits_scarcer_side(self) -> None:
        shares = compute_liquidity_shares(100.0, 50.0, 1_000.0, 1_000.0, 1_000.0)
        assert shares == pytest.approx(50.0)

    def test_after_first_swap_uses_min_ratio(self) -> None:
        ra, rb, total = 1_000_010.0, 999_990.03, 1_000_000.0
        shares = compute_liquidity_shares(100.0, 100.0, ra, rb, total)
        assert shares == pytest.approx(min(100.0 / ra, 100.0 / rb) * total)

    def test_rejects_non_positive_deposit(self) -> None:
        with pytest.raises(AmmMathError):
            compute_liquidity_shares(0.0, 1.0, 10.0, 10.0, 10.0)

    def test_rejects_empty_reserves_with_existing_supply(self) -> None:
        with pytest.raises(AmmMathError):
            compute_liquidity_shares(1.0, 1.0, 0.0, 10.0, 10.0)

    def test_rejects_negative_supply(self) -> None:
        with pytest.raises(AmmMathError):
            compute_liquidity_shares(1.0, 1.0, 10.0, 10.0, -1.0)


class TestWithdrawalAmounts:
    def test_pro_rata(self) -> None:
        a, b = compute_withdrawal_amounts(250.0, 1_000.0, 4_000.0, 1_000.0)
        assert (a, b) == (250.0, 1_000.0)

    def test_full_burn_returns_everything(self) -> None:
        amounts = compute_withdrawal_amounts(1_000.0, 1_000.0, 4_000.0, 1_000.0)
        assert amounts.amount_a == 1_000.0
        assert amounts.amount_b == 4_000.0

    def test_rejects_more_than_supply(self) -> None:
        with pytest.raises(AmmMathError):
            compute_withdrawal_amounts(1_001.0, 1_000.0, 1_000.0, 1_000.0)

    def test_rejects_zero_supply(self) -> None:
        with pytest.raises(AmmMathError):
            compute_withdrawal_amounts(1.0, 1_000.0, 1_000.0, 0.0)

    def test_rejects_non_positive_shares(self) -> None:
        with pytest.raises(AmmMathError):
            compute_withdrawal_amounts(0.0, 1_000.0, 1_000.0, 1_000.0)


def test_oversized_int_is_rejected_not_overflowed() -> None:
    with pytest.raises(AmmMathError, match="must be finite"):
        compute_output_amount(10**400, 100.0, 100.0)
    with pytest.raises(AmmMathError):
        compute_fee(10**400)
