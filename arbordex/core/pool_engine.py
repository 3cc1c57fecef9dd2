"""
Pool engine: the single owner of the pool's mutable state.

Every mutation builds a candidate `PoolState`, checks it, and only then
replaces the published snapshot. A rejected mutation raises and leaves the
previous snapshot in place for every other caller.

The engine trusts the caller's amounts (computed with `cpmm` against a
consistent snapshot) and enforces invariants on the result. To keep that
snapshot consistent under concurrency, callers run the whole
snapshot-compute-commit sequence inside `locked()`:

    with engine.locked() as snap:
        ...compute from snap...
        engine.execute_swap(...)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..state.pools import FeeTotals, PoolState, Side, seed_state
from .errors import InvariantViolationError, PoolBrokenError, PoolDepletedError
from .invariants import check_all, constant_product_holds, inv_reserves_positive
from .numbers import is_finite_number

logger = logging.getLogger(__name__)


def _require_amount(name: str, value: float) -> None:
    if not is_finite_number(value):
        raise ValueError(f"{name} must be a finite number: {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


class PoolEngine:
    """
    Holds one `PoolState` for the life of the process.

    Mutations: `execute_swap`, `add_liquidity`, `withdraw_liquidity`.
    Reads: `reserve`, `total_shares`, `accumulated_fees`, `k`, `snapshot`.
    `reset` restores the seed and is meant for tests and operators only.
    """

    def __init__(self, seed: Optional[PoolState] = None) -> None:
        self._seed = seed if seed is not None else seed_state()
        violations = check_all(self._seed)
        if violations:
            raise InvariantViolationError(violations, "seed state")
        self._state = self._seed
        self._lock = threading.RLock()

    # -- reads -------------------------------------------------------------

    def snapshot(self) -> PoolState:
        with self._lock:
            return self._state

    def reserve(self, side: Side) -> float:
        return self.snapshot().reserve(side)

    def total_shares(self) -> float:
        return self.snapshot().total_shares

    def accumulated_fees(self) -> FeeTotals:
        # FeeTotals is frozen, so handing it out cannot alias engine state.
        return self.snapshot().fees

    def k(self) -> float:
        return self.snapshot().k

    @contextmanager
    def locked(self) -> Iterator[PoolState]:
        """Hold the engine lock and yield the current snapshot."""
        with self._lock:
            yield self._state

    # -- mutations ---------------------------------------------------------

    def _publish(self, candidate: PoolState, op: str) -> PoolState:
        violations = check_all(candidate)
        if violations:
            logger.warning("%s rejected: %s", op, ", ".join(violations))
            raise InvariantViolationError(violations, op)
        self._state = candidate
        logger.debug("%s committed: %r", op, candidate)
        return candidate

    def execute_swap(
        self,
        input_side: Side,
        output_side: Side,
        amount_in: float,
        amount_out: float,
        fee: float,
    ) -> PoolState:
        """
        Apply a swap computed by the caller.

        Credits `amount_in` to the input reserve, debits `amount_out` from the
        output reserve and adds `fee` to the input side's fee counter. `k` is
        raised to the new product when it grows.

        Raises:
            ValueError: Same side on both legs, or a negative/non-finite amount
            PoolBrokenError: A reserve would end non-positive
            InvariantViolationError: The product would fall below k - epsilon
        """
        if input_side is output_side:
            raise ValueError(f"Cannot swap side {input_side.value} for itself")
        _require_amount("amount_in", amount_in)
        _require_amount("amount_out", amount_out)
        _require_amount("fee", fee)

        with self._lock:
            cur = self._state
            reserves = {Side.A: cur.reserve_a, Side.B: cur.reserve_b}
            reserves[input_side] += amount_in
            reserves[output_side] -= amount_out
            moved = cur.with_reserves(reserves[Side.A], reserves[Side.B])

            if not inv_reserves_positive(moved):
                logger.warning("swap rejected: reserves would be (%s, %s)", moved.reserve_a, moved.reserve_b)
                raise PoolBrokenError("Swap would break the pool. Reserves must remain positive.")

            new_product = moved.constant_product()
            if not constant_product_holds(new_product, cur.k):
                logger.warning("swap rejected: k would drop from %s to %s", cur.k, new_product)
                raise InvariantViolationError(
                    ["constant_product"],
                    f"k dropped from {cur.k} to {new_product}",
                )

            candidate = PoolState(
                reserve_a=moved.reserve_a,
                reserve_b=moved.reserve_b,
                total_shares=cur.total_shares,
                fees=cur.fees.add(input_side, fee),
                k=max(cur.k, new_product),
            )
            return self._publish(candidate, "swap")

    def add_liquidity(self, amount_a: float, amount_b: float, shares_issued: float) -> PoolState:
        """
        Deposit both assets and issue shares. `k` becomes the exact new product.

        Raises:
            ValueError: A negative or non-finite amount
            InvariantViolationError: The candidate state fails an invariant
        """
        _require_amount("amount_a", amount_a)
        _require_amount("amount_b", amount_b)
        _require_amount("shares_issued", shares_issued)

        with self._lock:
            cur = self._state
            reserve_a = cur.reserve_a + amount_a
            reserve_b = cur.reserve_b + amount_b
            candidate = PoolState(
                reserve_a=reserve_a,
                reserve_b=reserve_b,
                total_shares=cur.total_shares + shares_issued,
                fees=cur.fees,
                k=reserve_a * reserve_b,
            )
            return self._publish(candidate, "add_liquidity")

    def withdraw_liquidity(self, amount_a: float, amount_b: float, shares_burned: float) -> PoolState:
        """
        Burn shares and release both assets. `k` becomes the exact new product.

        Raises:
            ValueError: A negative or non-finite amount
            PoolDepletedError: A reserve would end non-positive, or every outstanding share would be burned
        """
        _require_amount("amount_a", amount_a)
        _require_amount("amount_b", amount_b)
        _require_amount("shares_burned", shares_burned)

        with self._lock:
            cur = self._state
            reserve_a = cur.reserve_a - amount_a
            reserve_b = cur.reserve_b - amount_b
            total_shares = cur.total_shares - shares_burned

            if reserve_a <= 0 or reserve_b <= 0:
                logger.warning("withdraw rejected: reserves would be (%s, %s)", reserve_a, reserve_b)
                raise PoolDepletedError("Withdrawal would deplete reserves. Cannot withdraw this much.")
            # Reserves stay positive past this point, so some shares must remain to claim them.
            if total_shares <= 0:
                logger.warning("withdraw rejected: burning %s of %s shares", shares_burned, cur.total_shares)
                raise PoolDepletedError(
                    f"Cannot burn {shares_burned} of {cur.total_shares} outstanding shares "
                    "while reserves remain in the pool"
                )

            candidate = PoolState(
                reserve_a=reserve_a,
                reserve_b=reserve_b,
                total_shares=total_shares,
                fees=cur.fees,
                k=reserve_a * reserve_b,
            )
            return self._publish(candidate, "withdraw_liquidity")

    def reset(self) -> PoolState:
        """Restore the seed state. Never route this to untrusted callers."""
        with self._lock:
            self._state = self._seed
            logger.info("pool reset to seed: %r", self._seed)
            return self._state
