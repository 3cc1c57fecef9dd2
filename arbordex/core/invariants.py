"""Invariant checkers for the pool state.

Each function returns True when the invariant holds; `check_all()` returns the
list of violated invariant IDs (empty = all pass). The engine runs these on
every candidate state before publishing it.

The swap-specific floor check (product >= k - epsilon) depends on the pre-state
and lives in `constant_product_holds()` instead of the registry.
"""

from __future__ import annotations

from typing import Callable

from ..state.pools import PoolState
from .numbers import is_finite_number

# Absolute and k-relative slack for float rounding in the product check.
K_ABS_TOLERANCE = 1e-3
K_REL_TOLERANCE = 5e-15


def inv_values_finite(s: PoolState) -> bool:
    return all(
        is_finite_number(v)
        for v in (s.reserve_a, s.reserve_b, s.total_shares, s.fees.a, s.fees.b, s.k)
    )


def inv_reserves_positive(s: PoolState) -> bool:
    return s.reserve_a > 0 and s.reserve_b > 0


def inv_shares_nonneg(s: PoolState) -> bool:
    return s.total_shares >= 0


def inv_fees_nonneg(s: PoolState) -> bool:
    return s.fees.a >= 0 and s.fees.b >= 0


def inv_k_nonneg(s: PoolState) -> bool:
    return s.k >= 0


INVARIANT_REGISTRY: dict[str, Callable[[PoolState], bool]] = {
    "inv_values_finite": inv_values_finite,
    "inv_reserves_positive": inv_reserves_positive,
    "inv_shares_nonneg": inv_shares_nonneg,
    "inv_fees_nonneg": inv_fees_nonneg,
    "inv_k_nonneg": inv_k_nonneg,
}


def check_all(state: PoolState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def k_tolerance(k: float) -> float:
    return max(K_ABS_TOLERANCE, K_REL_TOLERANCE * k)


def constant_product_holds(new_product: float, k: float) -> bool:
    """True iff new_product >= k - epsilon."""
    return new_product + k_tolerance(k) >= k
