"""
Constant Product Market Maker (CPMM) math for the ETH/USDC pool.

Pure, stateless functions over real-valued (float) amounts. Nothing here reads
or mutates the pool; the engine and the service layer pass reserves in.

Algorithm Design:
- Type: closed-form constant-product formulas (x * y = k)
- Time Complexity: O(1) per call
- Invariant: for amount_in > 0, 0 < amount_out < reserve_out (the output side is never drained)

Fees are taken from the input before it enters the curve and stay inside the
pool, so every fee-paying swap grows reserve_a * reserve_b. Liquidity providers
collect fees only through withdrawal (their share of grown reserves).
"""

from __future__ import annotations

import math
from typing import NamedTuple

from .errors import AmmDomainError, AmmMathError
from .numbers import is_finite_number, is_number

# 0.30% swap fee (Uniswap v2 flat rate)
FEE_RATE = 0.003
DEFAULT_SLIPPAGE_TOLERANCE = 0.005
MAX_ALLOWED_SLIPPAGE = 0.5

# Genesis share floor keeps later proportional share math away from tiny denominators.
MIN_GENESIS_SHARES = 1000.0


class FeeSplit(NamedTuple):
    fee: float
    amount_after_fee: float


class WithdrawalAmounts(NamedTuple):
    amount_a: float
    amount_b: float


def _require_finite(name: str, value: float) -> None:
    if not is_number(value):
        raise AmmMathError(f"{name} must be a number: {value!r}")
    if not is_finite_number(value):
        raise AmmMathError(f"{name} must be finite: {value}")


def _require_positive(name: str, value: float) -> None:
    _require_finite(name, value)
    if value <= 0:
        raise AmmMathError(f"{name} must be positive: {value}")


def compute_output_amount(amount_in: float, reserve_in: float, reserve_out: float) -> float:
    """
    Output of an exact-in swap against the constant-product curve.

    Formula:
        amount_out = amount_in * reserve_out / (reserve_in + amount_in)

    `amount_in` is the amount that enters the curve, i.e. already net of fees.

    Raises:
        AmmMathError: If any argument is non-finite or non-positive
    """
    _require_positive("amount_in", amount_in)
    _require_positive("reserve_in", reserve_in)
    _require_positive("reserve_out", reserve_out)
    return (amount_in * reserve_out) / (reserve_in + amount_in)


def compute_fee(amount_in: float, fee_rate: float = FEE_RATE) -> FeeSplit:
    """
    Split a gross input into (fee, amount_after_fee).

        fee = amount_in * fee_rate
        amount_after_fee = amount_in - fee

    Only finiteness is enforced; positivity of `amount_in` is the caller's job.
    """
    _require_finite("amount_in", amount_in)
    _require_finite("fee_rate", fee_rate)
    fee = amount_in * fee_rate
    return FeeSplit(fee=fee, amount_after_fee=amount_in - fee)


def compute_spot_price(reserve_out: float, reserve_in: float) -> float:
    """
    Marginal price of the input asset in units of the output asset.

    `compute_spot_price(reserve_b, reserve_a)` is the price of 1 ETH in USDC.

    Raises:
        AmmDomainError: If reserve_in is zero
        AmmMathError: If either reserve is negative or non-finite
    """
    _require_finite("reserve_out", reserve_out)
    _require_finite("reserve_in", reserve_in)
    if reserve_in == 0:
        raise AmmDomainError("Cannot calculate price with zero input reserve")
    if reserve_in < 0 or reserve_out < 0:
        raise AmmMathError(f"Reserves must be non-negative: ({reserve_out}, {reserve_in})")
    return reserve_out / reserve_in


def compute_price_impact(amount_out: float, amount_in: float, spot_price: float) -> float:
    """
    How much worse the execution price is than spot, as a fraction.

        impact = max(0, 1 - (amount_out / amount_in) / spot_price)

    Clamped at zero so rounding or mis-ordered inputs never report a negative impact.
    """
    _require_finite("amount_out", amount_out)
    _require_positive("amount_in", amount_in)
    _require_positive("spot_price", spot_price)
    if amount_out < 0:
        raise AmmMathError(f"amount_out must be non-negative: {amount_out}")
    execution_price = amount_out / amount_in
    return max(0.0, 1.0 - execution_price / spot_price)


def compute_minimum_output(expected_output: float, slippage_tolerance: float) -> float:
    """Smallest output a trade may settle for: expected_output * (1 - slippage_tolerance)."""
    _require_finite("expected_output", expected_output)
    _require_finite("slippage_tolerance", slippage_tolerance)
    return expected_output * (1.0 - slippage_tolerance)


def is_slippage_acceptable(actual_output: float, minimum_output: float) -> bool:
    return actual_output >= minimum_output


def compute_liquidity_shares(
    amount_a: float,
    amount_b: float,
    reserve_a: float,
    reserve_b: float,
    total_shares: float,
) -> float:
    """
    Shares issued for a deposit of (amount_a, amount_b).

    Genesis deposit (total_shares == 0):
        shares = max(sqrt(amount_a * amount_b), MIN_GENESIS_SHARES)

    Subsequent deposits:
        shares = min(amount_a / reserve_a, amount_b / reserve_b) * total_shares

    The minimum of the two fractions credits a lopsided deposit only up to its
    scarcer side; the excess is donated to existing holders.

    Raises:
        AmmMathError: On non-positive deposits, negative supply, or empty reserves
                      when shares already exist
    """
    _require_positive("amount_a", amount_a)
    _require_positive("amount_b", amount_b)
    _require_finite("total_shares", total_shares)
    if total_shares < 0:
        raise AmmMathError(f"total_shares must be non-negative: {total_shares}")

    if total_shares == 0:
        return max(math.sqrt(amount_a * amount_b), MIN_GENESIS_SHARES)

    _require_positive("reserve_a", reserve_a)
    _require_positive("reserve_b", reserve_b)
    fraction = min(amount_a / reserve_a, amount_b / reserve_b)
    return fraction * total_shares


def compute_withdrawal_amounts(
    shares: float,
    reserve_a: float,
    reserve_b: float,
    total_shares: float,
) -> WithdrawalAmounts:
    """
    Assets returned for burning `shares`.

        ownership = shares / total_shares
        amount_a = reserve_a * ownership
        amount_b = reserve_b * ownership

    Accumulated fees live inside the reserves, so this is also how fees are paid out.

    Raises:
        AmmMathError: On non-positive shares/supply, negative reserves, or shares > total_shares
    """
    _require_positive("shares", shares)
    _require_positive("total_shares", total_shares)
    _require_finite("reserve_a", reserve_a)
    _require_finite("reserve_b", reserve_b)
    if reserve_a < 0 or reserve_b < 0:
        raise AmmMathError(f"Reserves must be non-negative: ({reserve_a}, {reserve_b})")
    if shares > total_shares:
        raise AmmMathError(f"Cannot burn more shares than supply: {shares} > {total_shares}")

    ownership = shares / total_shares
    return WithdrawalAmounts(amount_a=reserve_a * ownership, amount_b=reserve_b * ownership)
