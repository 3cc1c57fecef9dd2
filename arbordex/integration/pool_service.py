"""
Pool service: the imperative shell between request handlers and the core.

Each operation follows the same pipeline:
- read a snapshot from the engine,
- run validation,
- compute quantities with the AMM math,
- for executing operations, commit through the engine.

Executing operations hold `engine.locked()` for the whole sequence so no
other request can move the reserves between the computation and the commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.cpmm import (
    compute_liquidity_shares,
    compute_spot_price,
    compute_withdrawal_amounts,
    is_slippage_acceptable,
)
from ..core.errors import AmmMathError, PoolEngineError
from ..core.numbers import is_finite_number
from ..core.pool_engine import PoolEngine
from ..core.quote import Quote, quote_swap, round_amount, round_impact
from ..core.validation import (
    ValidationLimits,
    validate_add_liquidity,
    validate_share_amount,
    validate_slippage_tolerance,
    validate_swap_amount,
    validate_swap_pair,
    validate_withdraw_liquidity,
)
from ..state.pools import TOKEN_A, TOKEN_B, PoolState, side_for_token
from .config import PoolSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    status: int = 200


def _ok(data: Dict[str, Any]) -> ServiceResult:
    return ServiceResult(ok=True, data=data)


def _rejected(error: Optional[str], status: int = 400) -> ServiceResult:
    return ServiceResult(ok=False, error=error or "rejected", status=status)


class PoolService:
    def __init__(self, engine: PoolEngine, settings: Optional[PoolSettings] = None) -> None:
        self.engine = engine
        self.settings = settings if settings is not None else PoolSettings()
        self._limits: ValidationLimits = self.settings.effective_limits()

    # -- reads -------------------------------------------------------------

    def pool_info(self) -> ServiceResult:
        return _ok(self.engine.snapshot().to_dict())

    def price(self) -> ServiceResult:
        snap = self.engine.snapshot()
        try:
            spot = compute_spot_price(snap.reserve_b, snap.reserve_a)
        except AmmMathError as exc:
            return _rejected(str(exc), status=409)
        return _ok(
            {
                "ethPriceInUsdc": spot,
                "interpretation": f"1 {TOKEN_A} = {spot:.6f} {TOKEN_B}",
            }
        )

    # -- swaps -------------------------------------------------------------

    def _check_swap_inputs(
        self, input_token: object, output_token: object, amount: object, slippage_tolerance: object
    ) -> Optional[ServiceResult]:
        for res in (
            validate_swap_pair(input_token, output_token),
            validate_swap_amount(amount, self._limits),
            validate_slippage_tolerance(slippage_tolerance, self._limits),
        ):
            if not res.valid:
                return _rejected(res.error)
        return None

    def _quote(self, snap: PoolState, input_token: str, amount: float, slippage_tolerance: float) -> Quote:
        return quote_swap(
            snap,
            side_for_token(input_token),
            float(amount),
            fee_rate=self.settings.fee_rate,
            slippage_tolerance=float(slippage_tolerance),
            limits=self._limits,
        )

    def quote(
        self,
        input_token: object,
        output_token: object,
        amount: object,
        slippage_tolerance: object = None,
    ) -> ServiceResult:
        """Price a swap without executing it."""
        if slippage_tolerance is None:
            slippage_tolerance = self.settings.default_slippage_tolerance
        rejected = self._check_swap_inputs(input_token, output_token, amount, slippage_tolerance)
        if rejected is not None:
            return rejected
        try:
            q = self._quote(self.engine.snapshot(), input_token, amount, slippage_tolerance)  # type: ignore[arg-type]
        except AmmMathError as exc:
            return _rejected(str(exc))
        return _ok(q.to_dict())

    def swap(
        self,
        input_token: object,
        output_token: object,
        amount: object,
        min_output: object = None,
        slippage_tolerance: object = None,
    ) -> ServiceResult:
        """
        Execute an exact-in swap.

        The trade settles only if the expected output is at least
        max(quote.minimum_output, min_output). The gross input is credited to
        the pool so the fee stays in the reserves.
        """
        if slippage_tolerance is None:
            slippage_tolerance = self.settings.default_slippage_tolerance
        rejected = self._check_swap_inputs(input_token, output_token, amount, slippage_tolerance)
        if rejected is not None:
            return rejected
        if min_output is not None and (not is_finite_number(min_output) or min_output < 0):  # type: ignore[operator]
            return _rejected(f"Invalid minimum output: {min_output}. Must be a non-negative number.")

        try:
            with self.engine.locked() as snap:
                q = self._quote(snap, input_token, amount, slippage_tolerance)  # type: ignore[arg-type]
                floor = max(q.minimum_output, float(min_output or 0))
                if not is_slippage_acceptable(q.expected_output, floor):
                    return _rejected(
                        f"Slippage exceeded. Expected {round_amount(q.expected_output)} {q.output_token}, "
                        f"minimum {round_amount(floor)}."
                    )
                after = self.engine.execute_swap(q.input_side, q.output_side, q.amount_in, q.expected_output, q.fee)
        except AmmMathError as exc:
            return _rejected(str(exc))
        except PoolEngineError as exc:
            logger.warning("swap %s->%s of %s failed: %s", input_token, output_token, amount, exc)
            return _rejected(str(exc), status=409)

        logger.info(
            "swap %s %s -> %s %s (fee %s)",
            q.amount_in, q.input_token, q.expected_output, q.output_token, q.fee,
        )
        tx: Dict[str, Any] = {
            "type": "swap",
            "from": q.input_token,
            "to": q.output_token,
            "inputAmount": q.amount_in,
            "fee": round_amount(q.fee),
            "outputAmount": round_amount(q.expected_output),
            "priceImpact": round_impact(q.price_impact),
            "poolEthAfter": after.reserve_a,
            "poolUsdcAfter": after.reserve_b,
            "message": (
                f"Swapped {q.amount_in} {q.input_token} for "
                f"{round_amount(q.expected_output)} {q.output_token}"
            ),
        }
        if q.warning is not None:
            tx["warning"] = q.warning
        return _ok({"status": "success", "transaction": tx})

    def buy(self, eth_amount: object, min_usdc_output: object = None, slippage_tolerance: object = None) -> ServiceResult:
        """Swap ETH for USDC."""
        return self.swap(TOKEN_A, TOKEN_B, eth_amount, min_usdc_output, slippage_tolerance)

    def sell(self, usdc_amount: object, min_eth_output: object = None, slippage_tolerance: object = None) -> ServiceResult:
        """Swap USDC for ETH."""
        return self.swap(TOKEN_B, TOKEN_A, usdc_amount, min_eth_output, slippage_tolerance)

    # -- liquidity ---------------------------------------------------------

    def add_liquidity(self, amount_a: object, amount_b: object) -> ServiceResult:
        try:
            with self.engine.locked() as snap:
                res = validate_add_liquidity(amount_a, amount_b, snap.reserve_a, snap.reserve_b, self._limits)
                if not res.valid:
                    return _rejected(res.error)
                a = float(amount_a)  # type: ignore[arg-type]
                b = float(amount_b)  # type: ignore[arg-type]
                shares = compute_liquidity_shares(a, b, snap.reserve_a, snap.reserve_b, snap.total_shares)
                after = self.engine.add_liquidity(a, b, shares)
        except AmmMathError as exc:
            return _rejected(str(exc))
        except PoolEngineError as exc:
            logger.warning("add_liquidity (%s, %s) failed: %s", amount_a, amount_b, exc)
            return _rejected(str(exc), status=409)

        logger.info("add_liquidity %s %s + %s %s -> %s shares", a, TOKEN_A, b, TOKEN_B, shares)
        return _ok(
            {
                "status": "success",
                "liquidity": {
                    "ethAdded": a,
                    "usdcAdded": b,
                    "sharesIssued": round_amount(shares),
                    "poolEthAfter": after.reserve_a,
                    "poolUsdcAfter": after.reserve_b,
                    "totalSharesAfter": after.total_shares,
                    "message": (
                        f"Added {a} {TOKEN_A} and {b} {TOKEN_B}, "
                        f"received {round_amount(shares)} LP shares"
                    ),
                },
            }
        )

    def remove_liquidity(self, shares: object) -> ServiceResult:
        try:
            with self.engine.locked() as snap:
                res = validate_share_amount(shares, snap.total_shares)
                if not res.valid:
                    return _rejected(res.error)
                burned = float(shares)  # type: ignore[arg-type]
                amount_a, amount_b = compute_withdrawal_amounts(
                    burned, snap.reserve_a, snap.reserve_b, snap.total_shares
                )
                res = validate_withdraw_liquidity(
                    burned, amount_a, amount_b, snap.reserve_a, snap.reserve_b, snap.total_shares, self._limits
                )
                if not res.valid:
                    return _rejected(res.error)
                after = self.engine.withdraw_liquidity(amount_a, amount_b, burned)
        except AmmMathError as exc:
            return _rejected(str(exc))
        except PoolEngineError as exc:
            logger.warning("remove_liquidity %s failed: %s", shares, exc)
            return _rejected(str(exc), status=409)

        logger.info("remove_liquidity %s shares -> %s %s + %s %s", burned, amount_a, TOKEN_A, amount_b, TOKEN_B)
        return _ok(
            {
                "status": "success",
                "liquidity": {
                    "sharesBurned": burned,
                    "ethWithdrawn": round_amount(amount_a),
                    "usdcWithdrawn": round_amount(amount_b),
                    "poolEthAfter": after.reserve_a,
                    "poolUsdcAfter": after.reserve_b,
                    "totalSharesAfter": after.total_shares,
                    "message": (
                        f"Burned {burned} shares, withdrawn {round_amount(amount_a)} {TOKEN_A} "
                        f"and {round_amount(amount_b)} {TOKEN_B}"
                    ),
                },
            }
        )
