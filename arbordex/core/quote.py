"""
Swap quotes.

A `Quote` is derived per request from a pool snapshot and never stored. It is
the single place where the AMM formulas are composed for a swap, so the quote
endpoint and the executing endpoints cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..state.pools import PoolState, Side, token_for_side
from .cpmm import (
    DEFAULT_SLIPPAGE_TOLERANCE,
    FEE_RATE,
    compute_fee,
    compute_minimum_output,
    compute_output_amount,
    compute_price_impact,
    compute_spot_price,
)
from .validation import DEFAULT_LIMITS, ValidationLimits, validate_price_impact


def round_amount(x: float) -> float:
    """Display rounding for token amounts (6 decimals)."""
    return round(x, 6)


def round_impact(x: float) -> float:
    """Display rounding for price impact (4 decimals)."""
    return round(x, 4)


@dataclass(frozen=True)
class Quote:
    input_side: Side
    output_side: Side
    amount_in: float
    fee: float
    amount_after_fee: float
    expected_output: float
    spot_price: float
    price_impact: float
    slippage_tolerance: float
    minimum_output: float
    warning: Optional[str] = None

    @property
    def input_token(self) -> str:
        return token_for_side(self.input_side)

    @property
    def output_token(self) -> str:
        return token_for_side(self.output_side)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "inputToken": self.input_token,
            "outputToken": self.output_token,
            "inputAmount": self.amount_in,
            "fee": round_amount(self.fee),
            "amountAfterFee": round_amount(self.amount_after_fee),
            "expectedOutput": round_amount(self.expected_output),
            "spotPrice": self.spot_price,
            "priceImpact": round_impact(self.price_impact),
            "slippageTolerance": self.slippage_tolerance * 100,
            "minimumOutput": round_amount(self.minimum_output),
            "message": (
                f"Expected {round_amount(self.expected_output)} {self.output_token} for "
                f"{self.amount_in} {self.input_token}, accept minimum {round_amount(self.minimum_output)}"
            ),
        }
        if self.warning is not None:
            out["warning"] = self.warning
        return out


def quote_swap(
    state: PoolState,
    input_side: Side,
    amount_in: float,
    *,
    fee_rate: float = FEE_RATE,
    slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE,
    limits: ValidationLimits = DEFAULT_LIMITS,
) -> Quote:
    """
    Price an exact-in swap of `amount_in` from `input_side` against `state`.

    The fee is taken first; the remainder enters the curve. Price impact is
    measured on the post-fee amount so it reflects curve movement only.

    Raises:
        AmmMathError: If amount_in or a reserve is non-positive or non-finite
    """
    output_side = input_side.other
    reserve_in = state.reserve(input_side)
    reserve_out = state.reserve(output_side)

    fee, amount_after_fee = compute_fee(amount_in, fee_rate)
    expected_output = compute_output_amount(amount_after_fee, reserve_in, reserve_out)
    spot_price = compute_spot_price(reserve_out, reserve_in)
    price_impact = compute_price_impact(expected_output, amount_after_fee, spot_price)
    minimum_output = compute_minimum_output(expected_output, slippage_tolerance)

    return Quote(
        input_side=input_side,
        output_side=output_side,
        amount_in=amount_in,
        fee=fee,
        amount_after_fee=amount_after_fee,
        expected_output=expected_output,
        spot_price=spot_price,
        price_impact=price_impact,
        slippage_tolerance=slippage_tolerance,
        minimum_output=minimum_output,
        warning=validate_price_impact(price_impact, limits).warning,
    )
