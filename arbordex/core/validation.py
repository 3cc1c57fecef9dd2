"""
Input validation gates for pool operations.

These functions never raise and never touch the pool. They consume raw user
input (and, where needed, reserve numbers read from a pool snapshot) and
return a `ValidationResult`. A failed result is a routine outcome to report to
the user; an `AmmMathError` further down means validation was skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..state.pools import TOKEN_A, TOKEN_B
from .numbers import is_finite_number


@dataclass(frozen=True)
class ValidationLimits:
    min_trade_amount: float = 0.01
    max_trade_amount: float = 100_000.0
    min_pool_reserve: float = 100.0
    min_slippage_tolerance: float = 0.0001
    max_slippage_tolerance: float = 0.5
    price_impact_warning: float = 0.05
    ratio_tolerance: float = 0.01

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            v = getattr(self, name)
            if not is_finite_number(v):
                raise TypeError(f"{name} must be a finite number")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if self.min_trade_amount > self.max_trade_amount:
            raise ValueError("min_trade_amount must not exceed max_trade_amount")
        if self.min_slippage_tolerance > self.max_slippage_tolerance:
            raise ValueError("min_slippage_tolerance must not exceed max_slippage_tolerance")


DEFAULT_LIMITS = ValidationLimits()


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


_OK = ValidationResult(valid=True)


def _fail(error: str) -> ValidationResult:
    return ValidationResult(valid=False, error=error)


def validate_swap_amount(amount: object, limits: ValidationLimits = DEFAULT_LIMITS) -> ValidationResult:
    """Positive, finite, above the dust floor and below the per-trade ceiling."""
    if not is_finite_number(amount) or amount <= 0:  # type: ignore[operator]
        return _fail(f"Invalid amount: {amount}. Must be a positive number.")
    if amount < limits.min_trade_amount:  # type: ignore[operator]
        return _fail(f"Amount too small: {amount}. Minimum is {limits.min_trade_amount}.")
    if amount > limits.max_trade_amount:  # type: ignore[operator]
        return _fail(f"Amount too large: {amount}. Maximum is {limits.max_trade_amount}.")
    return _OK


def validate_slippage_tolerance(
    slippage_tolerance: object, limits: ValidationLimits = DEFAULT_LIMITS
) -> ValidationResult:
    if not is_finite_number(slippage_tolerance) or slippage_tolerance < 0:  # type: ignore[operator]
        return _fail(f"Invalid slippage tolerance: {slippage_tolerance}. Must be >= 0.")
    tol = float(slippage_tolerance)  # type: ignore[arg-type]
    if tol < limits.min_slippage_tolerance:
        return _fail(
            f"Slippage tolerance too strict: {tol * 100:.3f}%. "
            f"Minimum is {limits.min_slippage_tolerance * 100:.3f}%."
        )
    if tol > limits.max_slippage_tolerance:
        return _fail(
            f"Slippage tolerance too loose: {tol * 100:.1f}%. "
            f"Maximum is {limits.max_slippage_tolerance * 100:.1f}%."
        )
    return _OK


def validate_price_impact(price_impact: object, limits: ValidationLimits = DEFAULT_LIMITS) -> ValidationResult:
    """
    Advisory only: impact in [0, 1] is always valid, with a warning above the threshold.

    Impact outside [0, 1] can only come from a bug upstream and is reported invalid.
    """
    if not is_finite_number(price_impact) or not (0 <= price_impact <= 1):  # type: ignore[operator]
        return _fail(f"Price impact out of range: {price_impact}")
    impact = float(price_impact)  # type: ignore[arg-type]
    if impact > limits.price_impact_warning:
        return ValidationResult(
            valid=True,
            warning=f"High price impact: {impact * 100:.2f}%. Consider splitting into smaller trades.",
        )
    return _OK


def validate_add_liquidity(
    amount_a: object,
    amount_b: object,
    reserve_a: float,
    reserve_b: float,
    limits: ValidationLimits = DEFAULT_LIMITS,
) -> ValidationResult:
    """
    Both amounts pass `validate_swap_amount`; for a non-empty pool the deposit
    ratio must match the reserve ratio within `ratio_tolerance` (relative to
    the A-side ratio); post-deposit reserves must reach the pool-size floor.
    """
    res_a = validate_swap_amount(amount_a, limits)
    if not res_a.valid:
        return _fail(f"{TOKEN_A}: {res_a.error}")
    res_b = validate_swap_amount(amount_b, limits)
    if not res_b.valid:
        return _fail(f"{TOKEN_B}: {res_b.error}")

    a = float(amount_a)  # type: ignore[arg-type]
    b = float(amount_b)  # type: ignore[arg-type]

    if reserve_a > 0 and reserve_b > 0:
        ratio_a = a / reserve_a
        ratio_b = b / reserve_b
        if abs(ratio_a - ratio_b) / ratio_a > limits.ratio_tolerance:
            return _fail(
                f"Amounts not proportional. {TOKEN_A} ratio: {ratio_a:.4f}, "
                f"{TOKEN_B} ratio: {ratio_b:.4f}. They should be equal."
            )

    if reserve_a + a < limits.min_pool_reserve:
        return _fail(f"Pool {TOKEN_A} would drop below minimum {limits.min_pool_reserve}")
    if reserve_b + b < limits.min_pool_reserve:
        return _fail(f"Pool {TOKEN_B} would drop below minimum {limits.min_pool_reserve}")
    return _OK


def validate_share_amount(shares: object, total_shares: float) -> ValidationResult:
    if not is_finite_number(shares) or shares <= 0 or shares > total_shares:  # type: ignore[operator]
        return _fail(f"Invalid shares: {shares}. Must be positive and <= {total_shares}.")
    return _OK


def validate_withdraw_liquidity(
    shares: object,
    amount_a: float,
    amount_b: float,
    reserve_a: float,
    reserve_b: float,
    total_shares: float,
    limits: ValidationLimits = DEFAULT_LIMITS,
) -> ValidationResult:
    """
    Shares are positive, finite and within `total_shares`; both post-withdrawal
    reserves stay at or above the pool-size floor.

    Per-depositor balances are not tracked, so the share check can only bound
    the request by the pool-wide supply.
    """
    if not is_finite_number(shares) or shares <= 0:  # type: ignore[operator]
        return _fail(f"Invalid shares: {shares}. Must be positive.")
    if shares > total_shares:  # type: ignore[operator]
        return _fail(f"Insufficient shares: {shares}. Pool only has {total_shares} outstanding.")

    remaining_a = reserve_a - amount_a
    if remaining_a < limits.min_pool_reserve:
        return _fail(
            f"Withdrawal would deplete pool. {TOKEN_A} would be {remaining_a:.2f}, "
            f"minimum {limits.min_pool_reserve}."
        )
    remaining_b = reserve_b - amount_b
    if remaining_b < limits.min_pool_reserve:
        return _fail(
            f"Withdrawal would deplete pool. {TOKEN_B} would be {remaining_b:.2f}, "
            f"minimum {limits.min_pool_reserve}."
        )
    return _OK


def validate_token(token: object) -> bool:
    return token in (TOKEN_A, TOKEN_B)


def validate_swap_pair(input_token: object, output_token: object) -> ValidationResult:
    if not validate_token(input_token):
        return _fail(f"Invalid input token: {input_token}. Must be {TOKEN_A} or {TOKEN_B}.")
    if not validate_token(output_token):
        return _fail(f"Invalid output token: {output_token}. Must be {TOKEN_A} or {TOKEN_B}.")
    if input_token == output_token:
        return _fail(f"Cannot swap {input_token} for itself. Must be different tokens.")
    return _OK
