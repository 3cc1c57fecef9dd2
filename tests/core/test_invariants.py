# [TESTER] v1

from __future__ import annotations

import math

from arbordex.core.invariants import (
    INVARIANT_REGISTRY,
    K_ABS_TOLERANCE,
    check_all,
    constant_product_holds,
    k_tolerance,
)
from arbordex.state.pools import FeeTotals, PoolState, seed_state


def test_seed_passes_every_invariant() -> None:
    assert check_all(seed_state()) == []


def test_registry_ids_are_reported() -> None:
    bad = PoolState(
        reserve_a=-1.0,
        reserve_b=10.0,
        total_shares=-5.0,
        fees=FeeTotals(a=-0.1, b=0.0),
        k=-1.0,
    )
    assert check_all(bad) == [
        "inv_reserves_positive",
        "inv_shares_nonneg",
        "inv_fees_nonneg",
        "inv_k_nonneg",
    ]


def test_non_finite_values_are_caught() -> None:
    s = PoolState(reserve_a=math.inf, reserve_b=10.0, total_shares=1.0, k=10.0)
    assert "inv_values_finite" in check_all(s)


def test_int_beyond_float_range_is_reported_not_raised() -> None:
    s = PoolState(reserve_a=10**400, reserve_b=10.0, total_shares=1.0, k=10.0)
    assert check_all(s) == ["inv_values_finite"]


def test_registry_order_is_stable() -> None:
    assert list(INVARIANT_REGISTRY) == [
        "inv_values_finite",
        "inv_reserves_positive",
        "inv_shares_nonneg",
        "inv_fees_nonneg",
        "inv_k_nonneg",
    ]


def test_tolerance_has_absolute_floor_and_scales_with_k() -> None:
    assert k_tolerance(1.0) == K_ABS_TOLERANCE
    assert k_tolerance(1e24) > K_ABS_TOLERANCE


def test_constant_product_holds_within_epsilon() -> None:
    k = 1e12
    assert constant_product_holds(k, k)
    assert constant_product_holds(k + 1.0, k)
    assert constant_product_holds(k - 0.0005, k)
    assert not constant_product_holds(k - 1.0, k)
